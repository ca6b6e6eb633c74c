from setuptools import find_packages, setup

setup(
    name="yandex-diskfs",
    version="0.1.0",
    description="Yandex Disk as a flat remote filesystem with cached directory creation",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "requests>=2.31.0",
        "google-auth>=2.20.0",
    ],
    entry_points={
        "console_scripts": [
            "yandex-diskfs=yandex_diskfs.__main__:main",
        ],
    },
    python_requires=">=3.10",
    extras_require={
        "dev": [
            "pytest",
            "build",
            "twine",
        ],
    },
)
