"""General metrics derived from the flags of each record"""

from ngs_qc.facets import computational_load, record_based_facet
from ngs_qc.results import results


class general_metrics_facet(record_based_facet):

    NAME = 'General Metrics'
    LOAD = computational_load.LIGHT
    SECTION = results.SUMMARY

    TOTAL_KEY = 'total'
    DUPLICATE_KEY = 'duplicate'
    UNMAPPED_KEY = 'unmapped'
    PRIMARY_KEY = 'primary'
    SECONDARY_KEY = 'secondary'
    SUPPLEMENTARY_KEY = 'supplementary'
    DUPLICATION_PCT_KEY = 'duplication pct'
    UNMAPPED_PCT_KEY = 'unmapped pct'

    def __init__(self, logger):
        super().__init__(logger)
        self.records = {
            self.TOTAL_KEY: 0,
            self.DUPLICATE_KEY: 0,
            self.UNMAPPED_KEY: 0,
            self.PRIMARY_KEY: 0,
            self.SECONDARY_KEY: 0,
            self.SUPPLEMENTARY_KEY: 0,
        }
        self.summary = None

    def process(self, record):
        self.records[self.TOTAL_KEY] += 1
        if record.is_duplicate:
            self.records[self.DUPLICATE_KEY] += 1
        if record.is_unmapped:
            self.records[self.UNMAPPED_KEY] += 1
        # designation is exclusive; a secondary alignment flagged supplementary counts as secondary
        if record.is_secondary:
            self.records[self.SECONDARY_KEY] += 1
        elif record.is_supplementary:
            self.records[self.SUPPLEMENTARY_KEY] += 1
        else:
            self.records[self.PRIMARY_KEY] += 1

    def summarize(self):
        total = self.records[self.TOTAL_KEY]
        self.summary = {
            self.DUPLICATION_PCT_KEY: self.percentage(self.records[self.DUPLICATE_KEY], total),
            self.UNMAPPED_PCT_KEY: self.percentage(self.records[self.UNMAPPED_KEY], total),
        }
        self.logger.debug("Summarized general metrics for %i records" % total)

    def get_metrics(self):
        return {
            'records': dict(self.records),
            'summary': self.summary
        }
