from setuptools import setup, find_packages

setup(
    name="fieldwatch",
    version="0.1.0",
    description="Field-service time-and-attendance anomaly detection",
    packages=find_packages(exclude=["tests*", "migrations*"]),
    python_requires=">=3.11",
    install_requires=[
        # Core dependencies
        "sqlalchemy>=2.0",
        "alembic",
        "pyyaml",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "fieldwatch = fieldwatch.cli:main",
        ],
    },
)
