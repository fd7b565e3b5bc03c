from setuptools import setup, find_packages

setup(
    name="rn-bridge",
    version="0.1.0",
    packages=find_packages(include=["rn_bridge", "rn_bridge.*"]),
    install_requires=[
        "aiohttp",
        "pydantic",
        "pydantic-settings",
        "python-dotenv",
        "opentelemetry-api",
        "opentelemetry-sdk",
        "opentelemetry-exporter-otlp-proto-http",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "pytest-mock",
        ],
    },
    entry_points={
        "console_scripts": [
            "rn-bridge=rn_bridge.main:main",
        ],
    },
    python_requires=">=3.9",
)
