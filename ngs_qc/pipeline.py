"""Two-pass traversal of an indexed BAM file, feeding records to quality check facets"""

import pysam

from ngs_qc.base import base_constants
from ngs_qc.errors import facet_error, missing_index, reference_mismatch
from ngs_qc.facets import facet_failure, reference_sequence


class two_pass_pipeline(base_constants):

    """
    Drive facets over a BAM file in two strictly ordered passes:

    1. Whole-file scan: every record in file order, at most once, to each record-based facet
       in registration order; optionally stopped early after a given number of records.
       Then each facet is summarized exactly once.
    2. Indexed scan: for each reference sequence in header order, one query spanning the
       whole sequence; records go to each sequence-based facet supporting that sequence,
       bracketed by setup and teardown calls. Teardown is called even if the query is empty.

    Errors reading the BAM file are not caught: a corrupt stream aborts the run.

    A facet raising an exception is recorded as a facet_failure. If abort_on_facet_error is
    True (the default), facet_error is raised immediately. Otherwise the facet is dropped for
    the remainder of the run and its statistics are incomplete; failures are listed in
    self.failures for reporting.
    """

    FIRST_PASS = 'first pass'
    SECOND_PASS = 'second pass'

    def __init__(self, bam_path, logger, abort_on_facet_error=True):
        self.bam_path = bam_path
        self.logger = logger
        self.abort_on_facet_error = abort_on_facet_error
        self.failures = []
        self.failed_facets = set()
        with pysam.AlignmentFile(self.bam_path, 'rb') as bam:
            self.sequences = [reference_sequence(name, length) \
                              for (name, length) in zip(bam.references, bam.lengths)]

    def reference_sequences(self):
        return list(self.sequences)

    @staticmethod
    def check_sequence_concordance(names, genome):
        """Raise reference_mismatch for the first name not found in the reference genome"""
        for name in names:
            if name not in genome:
                raise reference_mismatch(name, genome.name)

    def validate_reference_sequences(self, genome):
        try:
            self.check_sequence_concordance([seq.name for seq in self.sequences], genome)
        except reference_mismatch as err:
            self.logger.error(str(err))
            raise
        self.logger.debug("All %i sequences in %s are in reference genome %s" % \
                          (len(self.sequences), self.bam_path, genome.name))

    def check_index(self):
        with pysam.AlignmentFile(self.bam_path, 'rb') as bam:
            has_index = bam.has_index()
        if not has_index:
            msg = "No index found for %s; the second pass requires " % self.bam_path+\
                  "a .bai or .csi index. Create one with 'samtools index'."
            self.logger.error(msg)
            raise missing_index(msg)

    def log_facets(self, facets, pass_name):
        self.logger.info("Starting %s with the following facets enabled:" % pass_name)
        for facet in facets:
            self.logger.info(" [*] %s, %s" % (facet.name(), facet.load()))

    def is_active(self, facet):
        return id(facet) not in self.failed_facets

    def handle_failure(self, facet, phase, err, record=None, seq=None):
        """Record a facet_failure; raise facet_error, or disable the facet"""
        failure = facet_failure(
            facet=facet.name(),
            phase=phase,
            message="%s: %s" % (type(err).__name__, err),
            read_name=record.query_name if record is not None else None,
            sequence=seq.name if seq is not None else None
        )
        self.failures.append(failure)
        if self.abort_on_facet_error:
            self.logger.error("Facet '%s' failed in %s; aborting. %s" % \
                              (failure.facet, phase, failure.message))
            raise facet_error(failure) from err
        else:
            self.failed_facets.add(id(facet))
            msg = "Facet '%s' failed in %s and is disabled; " % (failure.facet, phase)+\
                  "its statistics will be incomplete. %s" % failure.message
            self.logger.warning(msg)

    def run_first_pass(self, facets, num_records=None):
        """Return the number of records processed"""
        self.log_facets(facets, self.FIRST_PASS)
        if num_records is None:
            self.logger.debug("Reading all available records in the first pass")
        elif num_records < 1:
            msg = "Maximum number of records must be at least 1, got %s" % num_records
            self.logger.error(msg)
            raise ValueError(msg)
        else:
            self.logger.debug("Reading a maximum of %i records in the first pass" % num_records)
        record_count = 0
        with pysam.AlignmentFile(self.bam_path, 'rb') as bam:
            for record in bam.fetch(until_eof=True):
                for facet in facets:
                    if not self.is_active(facet):
                        continue
                    try:
                        facet.process(record)
                    except Exception as err:
                        self.handle_failure(facet, 'process', err, record=record)
                record_count += 1
                if record_count % self.PROGRESS_INTERVAL == 0:
                    self.logger.info("  [*] Processed {:,} records.".format(record_count))
                # stop before the next record is read
                if num_records is not None and record_count >= num_records:
                    self.logger.info("Reached the maximum of {:,} records.".format(num_records))
                    break
        self.logger.info("Processed {:,} records in the first pass.".format(record_count))
        self.logger.info("Summarizing quality check facets for the first pass")
        for facet in facets:
            if not self.is_active(facet):
                continue
            try:
                facet.summarize()
            except Exception as err:
                self.handle_failure(facet, 'summarize', err)
        return record_count

    def run_second_pass(self, facets):
        """Return the number of records processed, summed over all sequences"""
        self.log_facets(facets, self.SECOND_PASS)
        total = 0
        with pysam.AlignmentFile(self.bam_path, 'rb') as bam:
            for seq in self.sequences:
                supporting = [f for f in facets if f.supports_sequence_name(seq.name)]
                if len(supporting) == 0:
                    self.logger.debug("No facets support sequence %s; skipping" % seq.name)
                    continue
                self.logger.info("Starting sequence %s" % seq.name)
                self.logger.debug("  [*] Setting up sequence.")
                for facet in supporting:
                    self.apply(facet, 'setup_sequence', seq)
                self.logger.debug("  [*] Processing records from sequence.")
                processed = 0
                for record in bam.fetch(seq.name, 0, seq.length):
                    for facet in supporting:
                        self.apply(facet, 'process_record', seq, record)
                    processed += 1
                    if processed % self.PROGRESS_INTERVAL == 0:
                        self.logger.info("  [*] Processed {:,} records for this sequence.".\
                                         format(processed))
                self.logger.debug("  [*] Tearing down sequence.")
                for facet in supporting:
                    self.apply(facet, 'teardown_sequence', seq)
                total += processed
        self.logger.info("Processed {:,} records in the second pass.".format(total))
        return total

    def apply(self, facet, method, seq, record=None):
        """Call a sequence-based facet method, subject to the facet error policy"""
        if not self.is_active(facet):
            return
        try:
            if record is None:
                getattr(facet, method)(seq)
            else:
                getattr(facet, method)(seq, record)
        except Exception as err:
            self.handle_failure(facet, method, err, record=record, seq=seq)
