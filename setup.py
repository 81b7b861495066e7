"""Setup configuration for the Braincell Discord Bot."""

from setuptools import setup, find_packages

setup(
    name="braincell",
    version="0.1.0",
    description="A Discord bot that passes a single brain cell around your server",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.4",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "prompt_toolkit>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "braincell=braincell.main:main",
        ],
    },
)
