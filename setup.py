"""
Setup script for the loan lifecycle chaincode.
"""
from setuptools import setup, find_packages

setup(
    name="loan-lifecycle-chaincode",
    version="0.1.0",
    description="Deterministic loan lifecycle chaincode with local ledger harness",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main"],
    python_requires=">=3.8",
    install_requires=[
        "pydantic>=2.0",
        "pydantic-settings",
        "sqlalchemy>=1.4",
        "structlog",
        "tenacity",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-mock",
        ],
    },
    entry_points={
        "console_scripts": [
            "loan-chaincode=main:main",
        ],
    },
)
