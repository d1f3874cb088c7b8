"""Setup script for IPFS Livestream."""

from setuptools import setup, find_packages

setup(
    name="ipfs-livestream",
    version="1.0.0",
    description="Screen broadcasting over IPFS with IPNS-published segment manifests",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    author="IPFS Livestream contributors",
    python_requires=">=3.11",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "requests>=2.31.0",
        "Flask>=3.0.0",
        "Werkzeug>=3.0.0",
        "keyboard>=0.13.5",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ipfs-livestream=ipfs_livestream.__main__:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "Operating System :: MacOS :: MacOS X",
        "Operating System :: Microsoft :: Windows",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Topic :: Multimedia :: Video :: Capture",
    ],
)
