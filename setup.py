"""Setup configuration for restore-points-manager package."""

from setuptools import setup, find_packages

setup(
    name="restore-points-manager",
    version="1.0.0",
    description="Scheduled creation and pruning of Windows System Restore checkpoints",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0.0",
        "python-dotenv>=1.0.0",
        "pyyaml>=6.0",
        "click>=8.1.0",
        "rich>=13.0.0",
        "httpx>=0.25.0",
        "tzdata>=2023.3; sys_platform == 'win32'",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-mock>=3.11.0",
            "ruff>=0.1.0",
            "mypy>=1.5.0",
            "black>=23.0.0",
            "tzdata>=2023.3",
        ],
    },
    entry_points={
        "console_scripts": [
            "restore-manager=restore_manager.cli.app:main",
        ],
    },
)
