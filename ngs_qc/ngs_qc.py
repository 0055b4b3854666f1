#! /usr/bin/env python3

"""Top-level quality check run: configure, traverse the BAM file twice, collect results"""

import os

from ngs_qc.base import base
from ngs_qc.coverage import coverage_facet
from ngs_qc.edits import edits_facet
from ngs_qc.features import feature_names, genomic_features_facet
from ngs_qc.gc_content import gc_content_facet
from ngs_qc.general import general_metrics_facet
from ngs_qc.pipeline import two_pass_pipeline
from ngs_qc.quality_scores import quality_scores_facet
from ngs_qc.reference_genome import get_reference_genome
from ngs_qc.results import results
from ngs_qc.template_length import template_length_facet


class ngs_qc(base):

    CONFIG_KEY_ABORT_ON_FACET_ERROR = 'abort on facet error'
    CONFIG_KEY_COVERAGE_BIN_SIZE = 'coverage bin size'
    CONFIG_KEY_FEATURE_NAMES = 'feature names'
    CONFIG_KEY_FEATURES_GFF = 'features gff'
    CONFIG_KEY_NUM_RECORDS = 'num records'
    CONFIG_KEY_OUTPUT_DIR = 'output directory'
    CONFIG_KEY_OUTPUT_PREFIX = 'output prefix'
    CONFIG_KEY_REFERENCE_FASTA = 'reference fasta'
    CONFIG_KEY_REFERENCE_GENOME = 'reference genome'

    DEFAULT_OUTPUT_PREFIX = 'ngs_qc'

    def __init__(self, config):
        self.validate_config_fields(config)
        # read instance variables from config
        self.logger = self.configure_logger(
            config[self.CONFIG_KEY_LOG],
            config[self.CONFIG_KEY_DEBUG],
            config[self.CONFIG_KEY_VERBOSE]
        )
        self.bam_path = config[self.CONFIG_KEY_BAM]
        self.genome = get_reference_genome(config[self.CONFIG_KEY_REFERENCE_GENOME])
        self.reference_fasta = config[self.CONFIG_KEY_REFERENCE_FASTA]
        self.features_gff = config[self.CONFIG_KEY_FEATURES_GFF]
        self.feature_names = feature_names(config[self.CONFIG_KEY_FEATURE_NAMES])
        self.num_records = config[self.CONFIG_KEY_NUM_RECORDS]
        bin_size = config[self.CONFIG_KEY_COVERAGE_BIN_SIZE]
        self.coverage_bin_size = bin_size if bin_size != None else coverage_facet.DEFAULT_BIN_SIZE
        abort = config[self.CONFIG_KEY_ABORT_ON_FACET_ERROR]
        self.abort_on_facet_error = abort if abort != None else True
        output_dir = config[self.CONFIG_KEY_OUTPUT_DIR]
        self.output_dir = output_dir if output_dir != None else os.getcwd()
        prefix = config[self.CONFIG_KEY_OUTPUT_PREFIX]
        self.output_prefix = prefix if prefix != None else self.DEFAULT_OUTPUT_PREFIX
        # define other instance variables
        from ngs_qc import read_package_version
        self.package_version = read_package_version()
        self.failures = []
        self.facets = []
        self.first_pass_records = None
        self.second_pass_records = None
        self.results = None
        # find metrics; if an error occurs, log it before exit
        try:
            self._find_metrics()
        except Exception as e:
            self.logger.exception("Unexpected error: {0}".format(e))
            raise

    def _find_metrics(self):
        self.logger.info("Started ngs_qc processing of %s" % self.bam_path)
        self.logger.info("Using reference genome %s (%s, %s)" % \
                         (self.genome.name, self.genome.source, self.genome.basis))
        pipeline = two_pass_pipeline(self.bam_path, self.logger, self.abort_on_facet_error)
        # setup checks, before any records are read
        pipeline.check_index()
        pipeline.validate_reference_sequences(self.genome)
        record_facets = self.get_record_based_facets()
        sequence_facets = self.get_sequence_based_facets()
        self.facets = record_facets + sequence_facets
        try:
            self.first_pass_records = pipeline.run_first_pass(record_facets, self.num_records)
            self.second_pass_records = pipeline.run_second_pass(sequence_facets)
        finally:
            for facet in self.facets:
                facet.close()
        self.failures = list(pipeline.failures)
        self.results = results(self.package_version, self.logger)
        for facet in self.facets:
            facet.aggregate(self.results)
        if len(self.failures) > 0:
            msg = "%i facet failure(s) occurred; statistics for " % len(self.failures)+\
                  "the failed facets are incomplete"
            self.logger.warning(msg)
            self.results.deposit(results.FACET_FAILURES, [f.to_dict() for f in self.failures])
        self.logger.info("Finished computing all ngs_qc metrics")

    def get_record_based_facets(self):
        """Facets for the first pass, in registration order"""
        facets = [
            general_metrics_facet(self.logger),
            template_length_facet(self.logger),
            gc_content_facet(self.logger),
            quality_scores_facet(self.logger),
        ]
        if self.features_gff != None:
            facets.append(genomic_features_facet(self.logger,
                                                 self.features_gff,
                                                 self.feature_names))
        else:
            self.logger.info("No GFF file given; genomic features will not be evaluated")
        return facets

    def get_sequence_based_facets(self):
        """Facets for the second pass, in registration order"""
        facets = [coverage_facet(self.logger, self.genome, self.coverage_bin_size)]
        if self.reference_fasta != None:
            facets.append(edits_facet(self.logger, self.reference_fasta))
        else:
            self.logger.info("No reference FASTA given; edits will not be evaluated")
        return facets

    def get_results(self):
        return self.results

    def validate_config_fields(self, config):
        """ Validate keys of the config dictionary for __init__ """
        expected = set([
            self.CONFIG_KEY_ABORT_ON_FACET_ERROR,
            self.CONFIG_KEY_BAM,
            self.CONFIG_KEY_COVERAGE_BIN_SIZE,
            self.CONFIG_KEY_DEBUG,
            self.CONFIG_KEY_FEATURE_NAMES,
            self.CONFIG_KEY_FEATURES_GFF,
            self.CONFIG_KEY_LOG,
            self.CONFIG_KEY_NUM_RECORDS,
            self.CONFIG_KEY_OUTPUT_DIR,
            self.CONFIG_KEY_OUTPUT_PREFIX,
            self.CONFIG_KEY_REFERENCE_FASTA,
            self.CONFIG_KEY_REFERENCE_GENOME,
            self.CONFIG_KEY_VERBOSE
        ])
        found = set(config.keys())
        self.validate_key_sets(found, expected)

    def write_output(self):
        """Write one JSON file per results section; return the paths written"""
        paths = self.results.write(self.output_dir, self.output_prefix)
        self.logger.info("Wrote %i JSON output file(s) to %s" % (len(paths), self.output_dir))
        return paths
