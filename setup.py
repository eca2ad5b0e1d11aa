from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="bidengine",
    version="0.1.0",
    author="bidengine maintainers",
    description="Bid validation and credit settlement for online auctions",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Office/Business :: Financial",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.11",
    install_requires=[
        # Presentation schemas
        "pydantic>=2.5.0",
        # CLI
        "click>=8.1.0",
        # .env support for BIDENGINE_* settings
        "python-dotenv>=1.0.0",
        # Colored console logs
        "colorlog>=6.7.0",
    ],
    extras_require={
        "test": ["pytest>=7.4"],
    },
    entry_points={
        "console_scripts": ["bidengine=bidengine.cli.main:cli"],
    },
)
