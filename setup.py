#!/usr/bin/env python
from setuptools import setup


with open('README.rst') as file:
    long_description = file.read()


setup(
    name='mediatype',
    description='Structured access to media type strings',
    long_description=long_description,
    version='1.0.0',
    python_requires='>=3.6',
    install_requires=['frozendict'],
    tests_require=['pytest>=3.0'],
    extras_require={
        'doc': ['sphinx >=1.3', 'sphinx_rtd_theme'],
        'test': ['pytest>=3.0'],
    },
    packages=['mediatype'],
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Operating System :: OS Independent',
        'Programming Language :: Python',
        'Topic :: Internet :: WWW/HTTP',
        'Topic :: Software Development :: Libraries',
        'Programming Language :: Python :: 3 :: Only',
    ],
    keywords='media type mime content-type parsing'
)
