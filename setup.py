"""
Setup script for fluency-drill.

Fluency Drill is the adaptive scheduling core of a music-theory drill
app. It serves two roles:

1. Scheduler - decides which note, interval or chord to ask next and
   tracks how fluent the learner is with each one
2. Session engine - runs timed quiz rounds and speed-check calibration

The 'fluency' command inspects stored progress and simulates sessions.
"""

from setuptools import find_namespace_packages, setup

setup(
    name="fluency-drill",
    version="1.0.0",
    description="Adaptive mastery scheduler and quiz session engine for music drills",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_namespace_packages(include=["src", "src.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
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
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "fluency=src.delivery.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Multimedia :: Sound/Audio",
    ],
    keywords="music drill adaptive spaced-repetition fluency",
)
