from setuptools import setup, find_packages

setup(
    name="asmex",
    version="1.0.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    # Python entry point for the command line tool
    entry_points={
        'console_scripts': [
            'asmex=asmex.cli:main',
        ],
    },
    install_requires=[
        "pyelftools>=0.29",
    ],
    extras_require={
        'test': [
            "pytest>=7.0",
        ],
    },
    python_requires=">=3.7",
    author="Asmex",
    description="Assembly to source navigation from objdump and DWARF dumps",
)
