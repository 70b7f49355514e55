from setuptools import setup, find_packages

setup(
    name="forkrpc",
    version="0.1.0",
    packages=find_packages(include=["forkrpc", "forkrpc.*"]),
    install_requires=[
        "aiohttp",
        "pydantic>=2",
        "pydantic-settings",
        "structlog",
        "prometheus-client",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "forkrpc-info=forkrpc.cli:main",
        ],
    }
)
