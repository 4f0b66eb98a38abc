import os
import json
from setuptools import setup, find_packages  # type: ignore

def create_folders():
    """Create required directories if they don't exist"""
    directories = ['cache', 'logs']
    for directory in directories:
        if not os.path.exists(directory):
            os.makedirs(directory)
            print(f"Created directory: {directory}")

def create_config():
    """Create config.json with default settings if it doesn't exist"""
    config_file = 'config.json'
    default_config = {
        "tenants_file": "tenants.json",
        "cache": {
            "base_path": "cache",
            "ttl_seconds": 21600
        },
        "locks": {
            "mode": "local"
        }
    }

    if not os.path.exists(config_file):
        with open(config_file, 'w') as f:
            json.dump(default_config, f, indent=4)
        print(f"Created config file with default settings")

if __name__ == "__main__":
    create_folders()
    create_config()

setup(
    name="enterprise-reports",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=[
        "api",
        "cohorts",
        "common_types",
        "data_processor",
        "demo_transform",
        "exceptions",
        "input_validator",
        "logger_config",
        "main_config",
        "metrics",
        "refresh_locks",
        "refresh_service",
        "reports_service",
        "services",
        "sheet_columns",
        "tenants",
    ],
    install_requires=[
        "requests>=2.25.0",
        "fastapi>=0.95.0",
        "pydantic>=1.10.0",
        "uvicorn>=0.20.0",
        "redis>=4.2.0",
        "prometheus-client>=0.16.0",
    ],
    extras_require={
        "test": [
            "pytest>=6.0.0",
            "pytest-mock>=3.6.0",
            "httpx>=0.23.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "reports-cache=cache_manager.cli:main",
        ],
    },
    python_requires=">=3.9",
)
