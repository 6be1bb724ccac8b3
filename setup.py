"""Setup configuration for Rolegate."""

from setuptools import setup, find_packages

setup(
    name="rolegate",
    version="0.0.1",
    description="Permission resolution and rate limiting for Discord community bots",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord",
        "PyYAML",
        "prompt_toolkit",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
)
