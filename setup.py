"""Setup script for calnote."""

from pathlib import Path

from setuptools import find_packages, setup

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements, routing test tooling into the extras
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
test_requirements = []

if requirements_file.exists():
    for line in requirements_file.read_text().strip().split("\n"):
        line = line.strip()
        # Skip empty lines and comments
        if not line or line.startswith("#"):
            continue

        if "pytest" in line:
            test_requirements.append(line)
        else:
            requirements.append(line)

setup(
    name="calnote",
    version="0.1.0",
    description="Insert calendar feed (ICS) events into daily notes as markwhen timelines",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["calnote", "calnote.*"]),
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "test": test_requirements,
        "dev": test_requirements
        + [
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
        ],
    },
    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Scheduling",
        "Framework :: AsyncIO",
    ],
    keywords="calendar ics icalendar markwhen daily-notes",
    entry_points={
        "console_scripts": [
            "calnote=calnote.__main__:main",
        ],
    },
    zip_safe=False,
)
