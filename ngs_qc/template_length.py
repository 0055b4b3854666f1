"""Template length distribution"""

from ngs_qc.errors import bin_out_of_range
from ngs_qc.facets import computational_load, record_based_facet
from ngs_qc.histogram import histogram
from ngs_qc.results import results


class template_length_facet(record_based_facet):

    """
    Distribution of records by template length, up to a fixed threshold (the histogram
    capacity). Records with a template length outside of the histogram are tallied as ignored.

    Mates of a pair carry template lengths of opposite sign; the absolute value is recorded.
    A template length of zero means the length is unknown, eg. unpaired or unmapped reads.
    """

    NAME = 'Template Length Metrics'
    LOAD = computational_load.LIGHT
    SECTION = results.TEMPLATE_LENGTH
    DEFAULT_CAPACITY = 1024

    UNKNOWN_PCT_KEY = 'template length unknown pct'
    OUT_OF_RANGE_PCT_KEY = 'template length out of range pct'

    def __init__(self, logger, capacity=DEFAULT_CAPACITY):
        super().__init__(logger)
        self.histogram = histogram(capacity)
        self.processed = 0
        self.ignored = 0
        self.summary = None

    def process(self, record):
        try:
            self.histogram.increment(abs(record.template_length))
            self.processed += 1
        except bin_out_of_range:
            self.ignored += 1

    def summarize(self):
        total = self.processed + self.ignored
        self.summary = {
            self.UNKNOWN_PCT_KEY: self.percentage(self.histogram.get(0), total),
            self.OUT_OF_RANGE_PCT_KEY: self.percentage(self.ignored, total),
        }

    def get_metrics(self):
        return {
            self.HISTOGRAM_KEY: self.histogram.to_dict(),
            'records': {
                self.PROCESSED_KEY: self.processed,
                self.IGNORED_KEY: self.ignored
            },
            'summary': self.summary
        }
