from setuptools import setup, find_packages

setup(
    name="tdd_assist",
    version="0.1.0",
    description="tdd_assist: chat command routing with a test-first code generation workflow",
    packages=find_packages(include=["tdd_assist", "tdd_assist.*"]),
    install_requires=[
        "pydantic>=2",  # Configuration and message models
        "jsonschema",  # Agent response validation
        "flake8",  # Linting
        "requests"
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "tdd-assist=tdd_assist.cli:main"
        ]
    },
)
