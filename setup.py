from setuptools import setup, find_packages

setup(
    name="rest-connector",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "pydantic>=2.0",
        "pyyaml>=6.0",
        "requests>=2.28",
        "typer>=0.9",
        "urllib3>=1.26",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "rest-connector=rest_connector.cli:main",
        ],
    },
    description="Encode typed REST operation arguments into HTTP requests following the OpenAPI serialization rules",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
)
