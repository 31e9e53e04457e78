from setuptools import setup, find_packages

setup(
    name="tabcron",
    version="0.1.0",
    description="tabcron - local crontab scheduler daemon",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "watchdog>=3.0.0",
        "python-dotenv>=1.0.0",
        "loguru>=0.7.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "tabcron=tabcron.main:main",
        ],
    },
)
