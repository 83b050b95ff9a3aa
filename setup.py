from setuptools import setup, find_packages

setup(
    name="nfc-identity-card",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main"],
    install_requires=[
        "pyscard",  # Used for NFC operations
        "ndeflib",  # Used for raw NDEF record listing (imported as ndef)
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.7",
)
