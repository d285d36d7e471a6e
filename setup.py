#!/usr/bin/env python3

from setuptools import setup, find_packages

setup(
    name="tarpeek",
    version="1.0.0",
    description="List and read tar archive entries without unpacking, with tar's selection rules",
    author="tarpeek contributors",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'tarpeek=tarpeek.cli:main',
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: System :: Archiving",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
