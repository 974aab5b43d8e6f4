#!/usr/bin/env python3
"""
Setup script for smsmodem.
"""

from setuptools import setup, find_packages

setup(
    name="smsmodem",
    version="0.1.0",
    description="Python library for sending and receiving SMS through cellular modems via AT commands",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "pyserial>=3.5",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-timeout>=2.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "smsmodem-cli=smsmodem.cli:main",
        ],
    },
    keywords=["sms", "pdu", "modem", "cellular", "at-commands", "gsm"],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Communications :: Telephony",
        "Topic :: System :: Hardware :: Hardware Drivers",
        "Operating System :: POSIX :: Linux",
        "License :: OSI Approved :: MIT License",
    ],
)
