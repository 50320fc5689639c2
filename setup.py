from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = f.read().splitlines()

setup(
    name="cabshare",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["server", "kv_server"],
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "test": ["pytest", "responses"],
    },
    entry_points={
        "console_scripts": [
            "cabshare=cabshare.cli_module.cli:main",
            "cabshare-server=server:cli",
        ],
    },
)
