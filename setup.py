#!/usr/bin/env python
import os
import re

from setuptools import find_packages, setup

here = os.path.abspath(os.path.dirname(__file__))

with open(os.path.join(here, "src", "image_merger", "version.py")) as f:
    version = re.search(r'__version__ = "(.+)"', f.read()).group(1)


setup(
    name="image-merger",
    version=version,
    description="Compose equally sized images into a grid, one image at a time",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.9",
    install_requires=[
        "attrs>=23.1.0",
        "numpy",
        "Pillow>=10.0.0",
    ],
    extras_require={
        "tests": ["pytest"],
    },
    entry_points={
        "console_scripts": ["image-merger=image_merger.__main__:main"],
    },
)
