
from .base import base, base_constants, validator
from .errors import bin_out_of_range, facet_error, missing_index, ngs_qc_error, \
    reference_mismatch, unsupported_reference_genome
from .facets import computational_load, facet_failure, record_based_facet, reference_sequence, \
    sequence_based_facet
from .histogram import histogram
from .ngs_qc import ngs_qc
from .pipeline import two_pass_pipeline
from .reference_genome import get_all_reference_genomes, get_reference_genome, reference_genome
from .results import results

# facet classes are exported for tests, and for callers assembling their own facet lists
from .coverage import coverage_facet
from .edits import edits_facet
from .features import feature_names, genomic_features_facet
from .gc_content import gc_content_facet
from .general import general_metrics_facet
from .quality_scores import quality_scores_facet
from .template_length import template_length_facet

import os

def read_package_version():
    """
    This method depends on relative path to the VERSION file
    So it has been placed in the package __init__ file, whose location will never change

    VERSION file is in 'etc/versions/ngs_qc'
    'etc' directory may be in one of two places relative to __init__.py:
    - Parent directory, if testing the source code
    - 4 directories up, following install, eg:
      - ngs-qc-0.3.0/etc/versions/ngs_qc/VERSION
      - ngs-qc-0.3.0/lib/python3.12/site-packages/ngs_qc/__init__.py
    """
    in_path = None
    ver_path = os.path.join('etc', 'versions', 'ngs_qc', 'VERSION')
    test_path = os.path.realpath(os.path.join(os.path.dirname(__file__), os.pardir, ver_path))
    install_path = os.path.realpath(os.path.join(os.path.dirname(__file__), *[os.pardir]*4, ver_path))
    if os.path.exists(test_path):
        in_path = test_path
    elif os.path.exists(install_path):
        in_path = install_path
    else:
        raise FileNotFoundError("Cannot find VERSION file; bad installation?")
    with open(in_path) as version_file:
        package_version = version_file.read().strip()
    return package_version
