from setuptools import find_packages, setup

setup(
    name="amo-submit",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10",
    install_requires=[
        "aiohttp",
        "aiofiles",
        "PyJWT",
        "platformdirs",
        "python-dotenv",
        "PyYAML",
        "rich",
    ],
    extras_require={
        "test": [
            "pytest<9.1",
            "pytest-asyncio",
            "pytest-mock",
        ],
    },
    entry_points={
        "console_scripts": [
            "amo-submit=amo_submit.cli:main",
        ],
    },
)
