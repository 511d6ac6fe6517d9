#!/usr/bin/env python3
"""
setup script for rulesheet
"""

from setuptools import setup, find_packages

# read the readme file for the long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# read requirements from requirements.txt, skip comments and empty lines
with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

# configure the package setup
setup(
    name="rulesheet",
    version="1.0.0",
    author="rulesheet contributors",
    author_email="-",
    description="Turn board game rulebook PDFs into concise rules summaries",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="-",
    # automatically find all packages in the project
    packages=find_packages(exclude=["tests*"]),
    include_package_data=True,
    package_data={"src.rulesheet": ["templates/*.html"]},
    # package metadata for pypi
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    # install all the dependencies from requirements.txt
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=8.0.0",
            "httpx>=0.26.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "rulesheet=src.rulesheet.cli:app",
        ],
    },
)
