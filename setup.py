"""Setup script for the Lumina photo editor."""

from setuptools import setup, find_packages
from pathlib import Path
import os

# Read the contents of your README file
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

# Get the version from the package
with open(os.path.join("lumina", "__init__.py"), "r") as f:
    for line in f:
        if line.startswith("__version__"):
            version = line.split('"')[1]
            break

setup(
    name="lumina-edit",
    version=version,
    author="Lumina Team",
    author_email="example@example.com",
    description="Film-style photo adjustments for single images and unattended batches",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["lumina", "lumina.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.19.0",
        "opencv-python>=4.5.0",
        "Pillow>=8.0.0",
    ],
    extras_require={
        "web": ["streamlit>=1.8.0"],
        "test": ["pytest>=7.0.0"],
    },
    entry_points={
        "console_scripts": [
            "lumina=lumina.cli:run_cli",
            "lumina-web=lumina.web:run_web_app",
        ],
    },
)
