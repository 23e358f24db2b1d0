"""
Setup script for phrase-drill.

Phrase drill is a terminal language game that walks a learner through
target-language phrases one batch of texts at a time:

1. Presentation - see the phrase, or skip straight to the answer
2. Revision / Retrieval - study (or recall) its semantic units
3. Solution - pick the right translation against the clock

Skipping straight to the answer and getting it right first time masters a
phrase. Progress is saved per learner and resumed on the next game.

The 'drill' command is the entry point.
"""

from setuptools import find_namespace_packages, setup

setup(
    name="phrase-drill",
    version="1.0.0",
    description="Batch-paced phrase mastery game for the terminal",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_namespace_packages(include=["src", "src.*"]),
    py_modules=["config", "play"],
    python_requires=">=3.11",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "drill=src.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="language-learning phrases drill cli education",
)
