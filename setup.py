from setuptools import setup

setup(name='promises',
      version='0.1',
      description='Small synchronous promise library with then/catch chaining.',
      license='MIT',
      classifiers=[
        'Development Status :: 3 - Alpha',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Topic :: Software Development :: Libraries',
      ],
      packages=['promises'],
      extras_require={
        'test': ['pytest'],
      },
      zip_safe=True)
