#!/usr/bin/env python3
"""
Setup script for ASL Biometrics
"""

from pathlib import Path

from setuptools import setup

HERE = Path(__file__).parent


def read_requirements():
    """Read runtime requirements from requirements.txt"""
    lines = (HERE / "requirements.txt").read_text().splitlines()
    return [line.strip() for line in lines if line.strip() and not line.startswith("#")]


setup(
    name="asl-biometrics",
    version="1.0.0",
    description="Telehealth identity verification from ASL hand-motion patterns",
    packages=["asl_biometrics"],
    python_requires=">=3.9",
    install_requires=read_requirements(),
    extras_require={
        "test": ["pytest>=7.0", "httpx>=0.24"],
    },
    entry_points={
        "console_scripts": [
            "asl-biometrics=asl_biometrics.server:main",
        ],
    },
)
