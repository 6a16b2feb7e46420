from setuptools import setup

with open("README.md", "r", encoding="utf-8") as fp:
    long_description = fp.read()

setup(
    name="catclient",
    version="1.0.0",
    description="CatClient is a module that provides both an API to install and launch versions of the game "
                "from the official manifest and a CLI to run it.",
    author="CatClient contributors",
    packages=["catclient", "catclient.cli"],
    url="https://github.com/catclient/catclient",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="GPL-3.0",
    python_requires=">=3.9",
    install_requires=["certifi"],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["catclient = catclient.cli:main"]},
)
