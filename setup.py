#!/usr/bin/python3
# Setup file for gitcas
# Copyright (C) 2008-2022 Jelmer Vernooĳ <jelmer@jelmer.uk>
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later

from setuptools import setup

setup(
    name="gitcas",
    version="0.1.0",
    description="Python implementation of git's content-addressable object database",
    license="Apache-2.0 OR GPL-2.0-or-later",
    python_requires=">=3.11",
    packages=["gitcas"],
    package_data={"": ["py.typed"]},
    install_requires=[],
    extras_require={
        "dev": ["ruff", "mypy"],
    },
    entry_points={
        "console_scripts": ["gitcas = gitcas.cli:_main"],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX",
        "Topic :: Software Development :: Version Control",
    ],
)
