#!/usr/bin/env python3

import setuptools

setuptools.setup(
    name='localjudge',
    version='0.1.0',
    description='Judge competitive programming solutions against local test cases',
    packages=setuptools.find_packages(exclude=['*.tests']),
    package_data={'localjudge': ['config/*.yaml']},
    python_requires='>=3.11',
    install_requires=[
        'PyYAML',
        'colorlog',
        'pydantic>=2',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
