"""
Setup script for lingo-progression.

The lingo progression engine is the adaptive core of a language-learning
app. For every learner and lexical chunk it decides:

1. Whether the chunk is known (SM-2 derived scheduling and status)
2. How hard the next session should be (i+1 calibration, session planning)
3. How performance turns into rewards (Sun Drops, garden tree health)

The 'lingo' command is an inspection CLI over the library.
"""

from setuptools import find_namespace_packages, setup

setup(
    name="lingo-progression",
    version="1.0.0",
    description="Adaptive learning-progression engine: spaced repetition, i+1 planning, affective monitoring",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_namespace_packages(include=["src", "src.*"]),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
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
            "lingo=src.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition language-learning adaptive i+1",
)
