#!/usr/bin/env python3
"""
Setup script for baremetal-csi.
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

packages = find_packages(where=".", include=["baremetal_csi", "baremetal_csi.*"])

setup(
    name="baremetal-csi",
    version="0.1.0",
    description="Volume lifecycle orchestration for node-local storage",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="Apache-2.0",
    packages=packages,
    package_dir={"": "."},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "baremetal-csi=baremetal_csi.cli.cli:main",
        ],
    },
)
