"""Distribution of per-base quality scores"""

from ngs_qc.errors import bin_out_of_range
from ngs_qc.facets import computational_load, record_based_facet
from ngs_qc.histogram import histogram
from ngs_qc.results import results


class quality_scores_facet(record_based_facet):

    NAME = 'Quality Scores'
    LOAD = computational_load.MODERATE
    SECTION = results.QUALITY_SCORES
    CAPACITY = 94 # Phred scores 0 to 93, the range printable in SAM

    IGNORED_BASES_KEY = 'ignored bases'

    def __init__(self, logger):
        super().__init__(logger)
        self.histogram = histogram(self.CAPACITY)
        self.processed = 0
        self.ignored = 0
        self.ignored_bases = 0

    def process(self, record):
        qualities = record.query_qualities
        if qualities is None or len(qualities) == 0:
            self.ignored += 1
            return
        for q in qualities:
            try:
                self.histogram.increment(q)
            except bin_out_of_range:
                self.ignored_bases += 1
        self.processed += 1

    def summarize(self):
        self.logger.debug("Found quality scores for %i bases" % self.histogram.total())

    def get_metrics(self):
        return {
            self.HISTOGRAM_KEY: self.histogram.to_dict(),
            self.PROCESSED_KEY: self.processed,
            self.IGNORED_KEY: self.ignored,
            self.IGNORED_BASES_KEY: self.ignored_bases,
            self.MEAN_KEY: self.round_or_none(self.histogram.mean()),
            self.MEDIAN_KEY: self.histogram.median(),
        }
