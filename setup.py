from setuptools import setup, find_packages


setup(
    name="vcfconsensus",
    version="0.1.0",
    description="Build IUPAC-encoded consensus sequences from VCF files",
    packages=find_packages(include=["vcfconsensus", "vcfconsensus.*"]),
    python_requires=">=3.7",
    install_requires=[
        "pysam>=0.18.0",
        "pyfaidx>=0.5.5.2",
        "biopython>=1.73",  # pyfaidx needs this for reading bgzipped FASTA files
        "xopen>=1.2.0",
    ],
    extras_require={
        "dev": ["pytest"],
    },
    entry_points={"console_scripts": ["vcfconsensus = vcfconsensus.__main__:main"]},
)
