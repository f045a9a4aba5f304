from setuptools import setup, find_packages

setup(
    name="takao-engine",
    version="0.1.0",
    description="Takao - turn-based story engine with requirement-driven action selection",
    author="Your Name",
    packages=find_packages(include=["takao_core", "takao_core.*", "takao_engine", "takao_engine.*"]),
    include_package_data=True,
    install_requires=[
        # Core data modeling and validation
        "pydantic>=2.0.0",

        # Environment variables
        "python-dotenv>=1.0.0",

        # CLI and rich output
        "typer>=0.9.0",
        "rich>=13.0.0",

        # YAML action catalogs
        "pyyaml>=6.0.0",

        # Jinja2 for action description templates
        "jinja2>=3.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "takao-engine = takao_engine.__main__:main",
        ],
    },
    python_requires=">=3.11",
    package_dir={"": "."},
)
