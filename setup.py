"""
Setup script for crawl-queue project.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_namespace_packages

setup(
    name="crawl-queue",
    version="0.1.0",
    packages=find_namespace_packages(include=["src", "src.*", "scripts"]),
    py_modules=["version"],
    install_requires=[
        "pymongo>=4.0",
        "python-dotenv>=1.0",
        "tenacity>=8.2",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.11",
)
