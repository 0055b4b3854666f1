"""
Capability contracts for quality check facets

A facet is a stateful analyzer, created once per run. It accumulates private state while
records are fed to it, and deposits its final metrics into its own section of the results
object at the end of the run. Facets never observe each other's state.

There are two disjoint contracts:
- record_based_facet: sees every record in the file once, in file order (first pass)
- sequence_based_facet: sees the records of one reference sequence at a time, as returned by
  an indexed query, bracketed by setup/teardown calls (second pass)

A facet signals failure by raising an exception; the pipeline records it as a facet_failure.
"""

import attr

from ngs_qc.base import base_constants


class computational_load(object):
    """Load classification, for operator-facing reporting only"""
    LIGHT = 'Light'
    MODERATE = 'Moderate'
    HEAVY = 'Heavy'


@attr.s(frozen=True)
class reference_sequence(object):
    """Reference sequence descriptor, from the alignment file header"""
    name = attr.ib()
    length = attr.ib()


@attr.s(frozen=True)
class facet_failure(object):
    """Typed failure outcome for one facet"""
    facet = attr.ib()
    phase = attr.ib()
    message = attr.ib()
    read_name = attr.ib(default=None)
    sequence = attr.ib(default=None)

    def to_dict(self):
        return attr.asdict(self)


class facet(base_constants):

    NAME = None
    LOAD = computational_load.LIGHT
    SECTION = None # name of the results section owned by this facet

    def __init__(self, logger):
        self.logger = logger

    def name(self):
        return self.NAME

    def load(self):
        return self.LOAD

    def aggregate(self, results):
        """Deposit final metrics in the results object; must not fail"""
        results.deposit(self.SECTION, self.get_metrics())

    def close(self):
        """Release any files held open; called once, at the end of the run"""
        pass

    def get_metrics(self):
        raise NotImplementedError


class record_based_facet(facet):

    def process(self, record):
        """Process one pysam.AlignedSegment"""
        raise NotImplementedError

    def summarize(self):
        """Called exactly once, after all records have been processed"""
        raise NotImplementedError


class sequence_based_facet(facet):

    def supports_sequence_name(self, name):
        return True

    def setup_sequence(self, seq):
        pass

    def process_record(self, seq, record):
        raise NotImplementedError

    def teardown_sequence(self, seq):
        """Must succeed for a sequence with no records"""
        pass
