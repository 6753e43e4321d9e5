import os

from setuptools import setup


def get_version():
    path = os.path.join(os.path.dirname(__file__), "netcoal", "core.py")
    with open(path) as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"')
    raise RuntimeError("Cannot find the netcoal version")


def get_long_description():
    path = os.path.join(os.path.dirname(__file__), "SPEC_FULL.md")
    with open(path) as f:
        return f.read()


def main():
    setup(
        name="netcoal",
        version=get_version(),
        description="Simulate gene trees under the multispecies network coalescent",
        long_description=get_long_description(),
        long_description_content_type="text/markdown",
        license="GPL-3.0-or-later",
        packages=["netcoal"],
        python_requires=">=3.8",
        install_requires=[
            "numpy>=1.17",
            "newick>=1.3.0",
            "daiquiri",
        ],
        extras_require={
            "test": [
                "pytest",
                "scipy",
            ],
        },
        entry_points={
            "console_scripts": [
                "netcoal=netcoal.cli:netcoal_main",
            ],
        },
        classifiers=[
            "Programming Language :: Python :: 3",
            "License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)",
            "Topic :: Scientific/Engineering :: Bio-Informatics",
        ],
    )


if __name__ == "__main__":
    main()
