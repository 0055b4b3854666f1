"""Coverage depth by reference sequence"""

from ngs_qc.errors import bin_out_of_range
from ngs_qc.facets import computational_load, sequence_based_facet
from ngs_qc.histogram import histogram
from ngs_qc.results import results


class coverage_facet(sequence_based_facet):

    """
    Per-sequence coverage, for primary assembly sequences of the reference genome.

    For each sequence, a per-position histogram of capacity equal to the sequence length
    tallies the number of records covering each (0-based) position. It is created on the
    first record for the sequence and deleted on teardown, so peak memory is bounded by the
    longest single sequence.

    On teardown the per-position histogram is reduced to:
    - a depth distribution: number of positions at each depth, over the populated range
      of positions, up to a maximum depth
    - mean, median and median/mean of that distribution
    - the mean depth in consecutive windows of fixed size along the whole sequence; the
      final window is averaged over the positions it contains

    Records extending outside the sequence are malformed. Out-of-range positions are not
    counted, and are tallied as ignored; the run is not interrupted.

    Undefined statistics are None: mean and median of a sequence with no coverage data,
    and median/mean when the mean is None or zero.
    """

    NAME = 'Coverage'
    LOAD = computational_load.MODERATE
    SECTION = results.COVERAGE
    DEFAULT_BIN_SIZE = 100000
    DEFAULT_MAX_DEPTH = 1024

    MEAN_COVERAGE_KEY = 'mean coverage'
    MEDIAN_COVERAGE_KEY = 'median coverage'
    MEDIAN_OVER_MEAN_KEY = 'median over mean coverage'
    MEAN_PER_BIN_KEY = 'mean coverage per bin'
    DISTRIBUTION_KEY = 'coverage distribution per sequence'
    BIN_SIZE_KEY = 'bin size'
    # ignored subsection
    NONSENSICAL_RECORDS_KEY = 'nonsensical records'
    IGNORED_POSITIONS_KEY = 'ignored positions'
    PILEUP_TOO_LARGE_KEY = 'pileup too large positions'
    UNMAPPED_RECORDS_KEY = 'unmapped records'

    def __init__(self, logger, genome, bin_size=DEFAULT_BIN_SIZE, max_depth=DEFAULT_MAX_DEPTH):
        super().__init__(logger)
        if bin_size < 1:
            raise ValueError("Coverage bin size must be at least 1, got %s" % bin_size)
        self.genome = genome
        self.primary_assembly = set([seq.name for seq in genome.primary_assembly()])
        self.bin_size = bin_size
        self.max_depth = max_depth
        self.coverage_per_position = {}
        self.mean_coverage = {}
        self.median_coverage = {}
        self.median_over_mean = {}
        self.mean_per_bin = {}
        self.distributions = {}
        self.nonsensical_records = 0
        self.unmapped_records = 0
        self.ignored_positions = {}
        self.pileup_too_large = {}

    def supports_sequence_name(self, name):
        return name in self.primary_assembly

    def setup_sequence(self, seq):
        self.ignored_positions[seq.name] = 0

    def process_record(self, seq, record):
        if record.is_unmapped or record.reference_end is None:
            self.unmapped_records += 1
            return
        positions = self.coverage_per_position.get(seq.name)
        if positions is None:
            positions = histogram(seq.length)
            self.coverage_per_position[seq.name] = positions
        ignored = 0
        for i in range(record.reference_start, record.reference_end):
            try:
                positions.increment(i)
            except bin_out_of_range:
                ignored += 1
        if ignored > 0:
            msg = "Record crosses the boundaries of sequence %s (length %i); " % \
                  (seq.name, seq.length)+\
                  "this usually means that the record is malformed. Ignoring %i " % ignored+\
                  "positions. Read name: %s, alignment start: %s, alignment end: %s, cigar: %s" % \
                  (record.query_name, record.reference_start+1, record.reference_end,
                   record.cigarstring)
            self.logger.warning(msg)
            self.nonsensical_records += 1
            self.ignored_positions[seq.name] = self.ignored_positions.get(seq.name, 0) + ignored

    def windows(self, positions, length):
        """Mean depth in consecutive windows of bin_size; the last window may be shorter"""
        means = []
        for start in range(0, length, self.bin_size):
            stop = min(start + self.bin_size, length)
            total = positions.sum_range(start, stop) if positions is not None else 0
            means.append(float(total) / (stop - start))
        return means

    def depth_distribution(self, positions):
        """Return a histogram of depth over the populated positions, and the number of positions
        with depth too large to record"""
        depths = histogram(self.max_depth)
        too_large = 0
        if positions is not None:
            for i in positions.populated_bins():
                try:
                    depths.increment(positions.get(i))
                except bin_out_of_range:
                    too_large += 1
        return (depths, too_large)

    def teardown_sequence(self, seq):
        positions = self.coverage_per_position.get(seq.name)
        if positions is None:
            self.logger.debug("No coverage data found for sequence %s" % seq.name)
        (depths, too_large) = self.depth_distribution(positions)
        mean = depths.mean()
        median = depths.median()
        if mean is None or mean == 0 or median is None:
            median_over_mean = None
        else:
            median_over_mean = median / mean
        self.mean_per_bin[seq.name] = self.windows(positions, seq.length)
        # discard the per-position data, to bound memory use
        self.coverage_per_position.pop(seq.name, None)
        self.mean_coverage[seq.name] = mean
        self.median_coverage[seq.name] = median
        self.median_over_mean[seq.name] = median_over_mean
        self.distributions[seq.name] = depths.to_dict()
        self.pileup_too_large[seq.name] = too_large
        if too_large > 0:
            self.logger.info("%i positions in %s have depth of %i or more" % \
                             (too_large, seq.name, self.max_depth))
        self.logger.debug("Finished coverage for %s: mean %s, median %s" % \
                          (seq.name, mean, median))

    def get_metrics(self):
        return {
            self.BIN_SIZE_KEY: self.bin_size,
            self.MEAN_COVERAGE_KEY: self.mean_coverage,
            self.MEDIAN_COVERAGE_KEY: self.median_coverage,
            self.MEDIAN_OVER_MEAN_KEY: self.median_over_mean,
            self.MEAN_PER_BIN_KEY: self.mean_per_bin,
            self.DISTRIBUTION_KEY: self.distributions,
            self.IGNORED_KEY: {
                self.NONSENSICAL_RECORDS_KEY: self.nonsensical_records,
                self.UNMAPPED_RECORDS_KEY: self.unmapped_records,
                self.IGNORED_POSITIONS_KEY: self.ignored_positions,
                self.PILEUP_TOO_LARGE_KEY: self.pileup_too_large,
            }
        }
