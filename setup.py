"""Setup configuration for optopodi"""

from setuptools import setup, find_packages

setup(
    name="optopodi",
    version="0.1.0",
    description=(
        "CLI tool for GitHub organization metrics: pull request participants, "
        "issue closures and high-contributor classification."
    ),
    author="optopodi Contributors",
    author_email="",
    python_requires=">=3.11",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "optopodi=optopodi.main:main",
        ],
    },
)
