#!/usr/bin/env python3
"""
Traefik Exposer - Setup Script

Packages the Traefik Exposer with its dependencies, entry points and metadata.
"""

import re
from pathlib import Path
from setuptools import setup, find_packages

HERE = Path(__file__).parent


def read_version():
    """Read the version string from the package without importing it"""
    init_file = HERE / "traefik_exposer" / "__init__.py"
    match = re.search(r'^__version__ = "([^"]+)"', init_file.read_text(encoding="utf-8"), re.M)
    return match.group(1) if match else "0.0.0"


# Read long description from README
def read_long_description():
    """Read long description from README file"""
    readme_file = HERE / "README.md"
    if readme_file.exists():
        with open(readme_file, "r", encoding="utf-8") as f:
            return f.read()
    return "Traefik dynamic configuration generated from Docker container labels"


# Core dependencies
INSTALL_REQUIRES = [
    "docker>=6.0.0",
    "fastapi>=0.104.0",
    "uvicorn[standard]>=0.24.0",
    "pydantic>=2.0.0",
    "requests>=2.25.0",
    "python-dotenv>=1.0.0",
]

# Optional dependencies
EXTRAS_REQUIRE = {
    "dev": [
        "pytest>=7.0.0",
        "pytest-cov>=2.10.0",
        "httpx>=0.24.0",
        "black>=21.0.0",
        "flake8>=3.8.0",
    ],
}


def main():
    setup(
        name="traefik-exposer",
        version=read_version(),
        author="Traefik Exposer Team",
        description="Traefik dynamic configuration generated from Docker container labels",
        long_description=read_long_description(),
        long_description_content_type="text/markdown",
        packages=find_packages(exclude=["tests", "tests.*"]),
        classifiers=[
            "Development Status :: 4 - Beta",
            "Intended Audience :: System Administrators",
            "License :: OSI Approved :: MIT License",
            "Operating System :: OS Independent",
            "Programming Language :: Python :: 3",
            "Programming Language :: Python :: 3.9",
            "Programming Language :: Python :: 3.10",
            "Programming Language :: Python :: 3.11",
            "Programming Language :: Python :: 3.12",
            "Topic :: Internet :: Proxy Servers",
            "Topic :: System :: Systems Administration",
        ],
        python_requires=">=3.9",
        install_requires=INSTALL_REQUIRES,
        extras_require=EXTRAS_REQUIRE,
        entry_points={
            "console_scripts": [
                "traefik-exposer=traefik_exposer.main:main",
            ],
        },
        keywords=[
            "docker",
            "traefik",
            "reverse-proxy",
            "service-discovery",
            "containers",
            "fastapi",
        ],
        include_package_data=True,
        zip_safe=False,
    )


if __name__ == "__main__":
    main()
