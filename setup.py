"""Setup configuration for CultBot Discord Bot."""

from setuptools import setup, find_packages

setup(
    name="cultbot",
    version="0.0.1",
    description="A Discord bot for member initiation, chat moderation and live stream announcements",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.6",
        "aiosqlite>=0.20",
        "aiohttp>=3.9",
        "PyYAML>=6.0",
        "prompt_toolkit>=3.0",
        "python-dotenv>=1.0",
        "tzdata>=2024.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "cultbot=cultbot.main:main",
        ],
    },
)
