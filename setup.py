"""Setup script for the project."""

from setuptools import setup, find_packages

setup(
    name="goalsplit-api",
    version="1.0.0",
    description="Shared savings goals API with contribution planning",
    packages=find_packages(exclude=["tests", "tests.*", "scripts"]),
    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn[standard]>=0.27.0",
        "motor>=3.3.0",
        "pymongo>=4.6.0",
        "pydantic>=2.6.0",
        "pydantic-settings>=2.1.0",
    ],
    extras_require={
        "test": [
            "httpx>=0.26.0",
            "pytest>=8.0.0",
            "mongomock-motor>=0.0.29",
        ],
    },
    python_requires=">=3.10",
)
