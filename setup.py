"""Setup script for blood-bank-coordination package following Cosmic Python pattern."""

from setuptools import setup, find_namespace_packages

setup(
    name="blood-bank-coordination",
    version="1.0.0",
    description="Blood bank coordination service - inventory search and blood request workflow",
    author="Blood Bank Coordination Team",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["bloodbank*", "shared*"]),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "uvicorn[standard]",
        "pydantic",
        "sqlalchemy>=2.0",
        "psycopg2-binary",
        "redis",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-cov",
            "httpx",
            "fakeredis",
        ],
        "dev": [
            "black",
            "flake8",
            "mypy",
            "pre-commit",
        ],
    },
    entry_points={
        "console_scripts": [
            "bloodbank-api=bloodbank.entrypoints.bloodbank_api:main",
            "bloodbank-seed=bloodbank.entrypoints.seed:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Healthcare Industry",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Medical Science Apps.",
    ],
)
