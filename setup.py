"""
Laragen - Laravel CRUD scaffolding and relationship inference
Install: pip install -e .
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="laragen",
    version="1.0.0",
    author="Laragen Team",
    author_email="",
    description="⚡ Generate Laravel CRUD slices and keep Eloquent relations in sync",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Code Generators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Environment :: Console",
    ],
    python_requires=">=3.10",
    install_requires=[
        "sqlalchemy>=2.0.0",
        "pydantic>=2.0.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "mysql": [
            "PyMySQL>=1.0",
        ],
        "postgresql": [
            "psycopg2-binary>=2.9",
        ],
        "dev": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "laragen=laragen.cli:cli_main",
        ],
    },
    keywords="laravel, eloquent, generator, crud, relationships, scaffolding, code-generator",
)
