"""Setup script for the swapbridge package."""

from setuptools import find_packages, setup

setup(
    name="swapbridge",
    version="0.1.0",
    description="Bridge from SWAP wireless sensor motes to an MQTT hub",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pyyaml",
        "python-dotenv",
        "paho-mqtt>=2.0.0",
        "pydantic>=2.0",
    ],
    extras_require={
        "dev": [
            "pytest",
            "black",
            "isort",
            "mypy",
        ],
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "swapbridge-pack=swapbridge.pack:main",
        ],
    },
)
