from setuptools import setup, find_packages

setup(
    name="wayvncctl",
    version="0.1.0",
    description="Control client for the wayvnc control socket",
    author="wayvncctl contributors",
    license="ISC",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "typer>=0.9.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "wayvncctl=wayvncctl.main:wayvncctl",
        ],
    },
    python_requires=">=3.10",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
)
