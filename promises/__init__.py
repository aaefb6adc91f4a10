'''Small synchronous promise library.

* Promise: a result that arrives later, with .then() / .catch() chaining.
* PromiseState, Outcome: what a settled promise holds.
* PromiseError, PromiseDoneError: errors raised to the promise issuer.
'''

from .promise import Promise, PromiseState, Outcome, PromiseError, PromiseDoneError

__all__ = [
        'Promise',
        'PromiseState',
        'Outcome',
        'PromiseError',
        'PromiseDoneError',
        ]
