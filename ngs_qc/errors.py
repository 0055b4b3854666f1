"""Exception classes for ngs-qc"""


class ngs_qc_error(Exception):
    """Base class for errors raised by ngs-qc"""
    pass


class unsupported_reference_genome(ngs_qc_error):
    """Reference genome identifier is neither a built-in genome nor a readable sequence table"""
    pass


class reference_mismatch(ngs_qc_error):
    """A sequence declared in the alignment file header is absent from the reference genome"""

    def __init__(self, sequence_name, genome_name):
        self.sequence_name = sequence_name
        self.genome_name = genome_name
        msg = "Sequence \"%s\" not found in reference genome %s. " % (sequence_name, genome_name)+\
              "Did you set the correct reference genome?"
        super().__init__(msg)


class missing_index(ngs_qc_error):
    """No positional index is available for the alignment file"""
    pass


class bin_out_of_range(ngs_qc_error, ValueError):
    """Histogram increment outside of [0, capacity)"""

    def __init__(self, value, capacity):
        self.value = value
        self.capacity = capacity
        super().__init__("Value %s is outside histogram range [0, %i)" % (value, capacity))


class facet_error(ngs_qc_error):
    """A facet failed while processing; carries the facet_failure record"""

    def __init__(self, failure):
        self.failure = failure
        super().__init__("[%s] %s" % (failure.facet, failure.message))
