"""
YouTube Analysis Service build script.

Usage:
    # Development (editable install):
    pip install -e ".[test]"

    # Run the service:
    ytanalysis-server
"""

from setuptools import setup, find_namespace_packages

APP_NAME = "ytanalysis"

setup(
    name=APP_NAME,
    version="1.0.0",
    description="YouTube video analysis service: screenshot, transcription and AI-authorship detection",
    packages=find_namespace_packages(include=["ytanalysis", "ytanalysis.*"]),
    py_modules=["main"],
    install_requires=[
        "requests>=2.28.0",
        "flask>=2.2",
        "werkzeug>=2.2",
        "waitress>=2.1",
        "selenium>=4.10",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "ytanalysis-server=main:main",
        ],
    },
)
