"""GC content distribution of read sequences"""

from ngs_qc.facets import computational_load, record_based_facet
from ngs_qc.histogram import histogram
from ngs_qc.results import results


class gc_content_facet(record_based_facet):

    NAME = 'GC Content'
    LOAD = computational_load.LIGHT
    SECTION = results.GC_CONTENT
    CAPACITY = 101 # GC percentage, 0 to 100 inclusive

    def __init__(self, logger):
        super().__init__(logger)
        self.histogram = histogram(self.CAPACITY)
        self.ignored = 0

    def gc_percentage(self, sequence):
        """Rounded percentage of G/C among A/C/G/T bases, or None if there are no such bases"""
        sequence = sequence.upper()
        gc = sequence.count('G') + sequence.count('C')
        at = sequence.count('A') + sequence.count('T')
        if gc + at == 0:
            return None
        return int(round(100.0 * gc / (gc + at)))

    def process(self, record):
        sequence = record.query_sequence
        if sequence is None:
            self.ignored += 1
            return
        gc_pct = self.gc_percentage(sequence)
        if gc_pct is None:
            self.ignored += 1
        else:
            self.histogram.increment(gc_pct)

    def summarize(self):
        self.logger.debug("Found GC content for %i records" % self.histogram.total())

    def get_metrics(self):
        return {
            self.HISTOGRAM_KEY: self.histogram.to_dict(),
            self.PROCESSED_KEY: self.histogram.total(),
            self.IGNORED_KEY: self.ignored,
            self.MEAN_KEY: self.round_or_none(self.histogram.mean()),
            self.MEDIAN_KEY: self.histogram.median(),
        }
