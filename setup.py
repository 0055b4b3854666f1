"""
Setup script for ngs-qc
"""

import os
from setuptools import setup, find_packages

package_identifier = "ngs_qc"
version_dir = os.path.join('etc', 'versions', package_identifier)
version_filename = 'VERSION'
with open(os.path.join(os.path.dirname(__file__), version_dir, version_filename)) as version_file:
    package_version = version_file.read().strip()

setup(
    name='ngs-qc',
    version=package_version,
    scripts=['bin/run_ngs_qc.py', 'bin/list_reference_genomes.py'],
    packages=find_packages(exclude=['test']),
    install_requires=['attrs', 'jsonschema', 'pybedtools', 'pyrsistent', 'pysam'],
    data_files=[(version_dir, [os.path.join(version_dir, version_filename)])],
    python_requires='>=3.8',
    description="Quality control metrics for next-generation sequencing alignment files",
    long_description="Two-pass quality control for indexed BAM files: a whole-file scan feeding "+\
    "record-based facets, and an indexed per-sequence scan feeding sequence-based facets "+\
    "such as coverage.",
)
