"""Edit distance of each record to the reference sequence"""

import pysam

from ngs_qc.errors import bin_out_of_range
from ngs_qc.facets import computational_load, sequence_based_facet
from ngs_qc.histogram import histogram
from ngs_qc.results import results


class edits_facet(sequence_based_facet):

    """
    Edit distance = mismatched aligned bases + inserted bases + deleted bases, found by
    comparing each record with the reference FASTA. Distances outside the histogram are
    tallied as ignored.

    The reference sequence is loaded on setup and released on teardown, so at most one
    sequence is held in memory.
    """

    NAME = 'Edits'
    LOAD = computational_load.HEAVY
    SECTION = results.EDITS
    DEFAULT_CAPACITY = 1024

    # CIGAR operations
    INSERTION = 1
    DELETION = 2

    def __init__(self, logger, fasta_path, capacity=DEFAULT_CAPACITY):
        super().__init__(logger)
        self.fasta_path = fasta_path
        self.fasta = pysam.FastaFile(fasta_path)
        self.fasta_sequences = set(self.fasta.references)
        self.histogram = histogram(capacity)
        self.processed = 0
        self.ignored = 0
        self.reference = None

    def supports_sequence_name(self, name):
        return name in self.fasta_sequences

    def setup_sequence(self, seq):
        self.reference = self.fasta.fetch(seq.name).upper()
        self.logger.debug("Loaded %i bases of reference sequence %s" % (len(self.reference),
                                                                        seq.name))

    def edit_distance(self, record):
        query = record.query_sequence.upper()
        mismatches = 0
        for (query_pos, ref_pos) in record.get_aligned_pairs(matches_only=True):
            if ref_pos >= len(self.reference) or query[query_pos] != self.reference[ref_pos]:
                mismatches += 1
        indels = 0
        for (op, length) in record.cigartuples:
            if op in (self.INSERTION, self.DELETION):
                indels += length
        return mismatches + indels

    def process_record(self, seq, record):
        if record.is_unmapped or record.query_sequence is None or record.cigartuples is None:
            self.ignored += 1
            return
        try:
            self.histogram.increment(self.edit_distance(record))
            self.processed += 1
        except bin_out_of_range:
            self.ignored += 1

    def teardown_sequence(self, seq):
        self.reference = None

    def close(self):
        self.fasta.close()

    def get_metrics(self):
        return {
            self.HISTOGRAM_KEY: self.histogram.to_dict(),
            self.PROCESSED_KEY: self.processed,
            self.IGNORED_KEY: self.ignored,
            self.MEAN_KEY: self.round_or_none(self.histogram.mean()),
            self.MEDIAN_KEY: self.histogram.median(),
        }
