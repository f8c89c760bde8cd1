"""Setup configuration for podshell package"""

from setuptools import setup, find_packages
from pathlib import Path

# Read version from __version__.py
version = {}
version_file = Path(__file__).parent / "podshell" / "__version__.py"
with open(version_file) as f:
    exec(f.read(), version)

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
with open(readme_file, encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="podshell",
    version=version["__version__"],
    description="Remote container supervision over SSH with a self-deploying agent",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Podshell Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "docker>=6.0.0",
        "paramiko>=3.0.0",
        "tabulate>=0.9.0",
        "pyyaml>=6.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "podshell=podshell.cli:main",
            "podshell-agent=podshell.agent.server:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: System :: Systems Administration",
    ],
)
