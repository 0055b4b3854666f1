#! /usr/bin/env python3

"""Shared constants, logging setup and argument validation"""

import logging
import os
import sys


class base_constants(object):
    """
    Class for shared constants
    """

    PRECISION = 1 # number of decimal places for rounded output
    FINE_PRECISION = 3 # finer precision, eg. for percentages
    PACKAGE_VERSION_KEY = 'package version'
    PROGRESS_INTERVAL = 1000000 # log progress every N records

    # shared metric keys
    PROCESSED_KEY = 'processed'
    IGNORED_KEY = 'ignored'
    HISTOGRAM_KEY = 'histogram'
    MEAN_KEY = 'mean'
    MEDIAN_KEY = 'median'

    # shared keys for config dictionary
    CONFIG_KEY_BAM = 'bam'
    CONFIG_KEY_DEBUG = 'debug'
    CONFIG_KEY_LOG = 'log path'
    CONFIG_KEY_VERBOSE = 'verbose'

    def percentage(self, numerator, denominator):
        """Percentage rounded to FINE_PRECISION, or None if the denominator is zero"""
        if denominator > 0:
            return round(float(numerator) / denominator * 100.0, self.FINE_PRECISION)
        else:
            return None

    def round_or_none(self, value, precision=None):
        """Round a statistic which may be undefined (None)"""
        if value is None:
            return None
        return round(value, self.PRECISION if precision is None else precision)


class base(base_constants):
    """
    Class for methods shared between the top-level qc runner and command-line scripts
    """

    def configure_logger(self, log_path=None, debug=False, verbose=False):
        logger = logging.getLogger(__name__)
        log_level = logging.WARN
        if debug:
            log_level = logging.DEBUG
        elif verbose:
            log_level = logging.INFO
        logger.setLevel(log_level)
        handler = logging.StreamHandler() if log_path is None else logging.FileHandler(log_path)
        handler.setLevel(log_level)
        formatter = logging.Formatter('%(asctime)s %(name)s %(levelname)s: %(message)s',
                                      datefmt='%Y-%m-%d_%H:%M:%S')
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        return logger

    def validate_key_sets(self, found, expected):
        """Compare set objects containing config keys; raise an informative error on mismatch"""
        if expected != found:
            not_found_set = expected - found
            not_found = not_found_set if len(not_found_set) > 0 else None
            not_expected_set = found - expected
            not_expected = not_expected_set if len(not_expected_set) > 0 else None
            msg = "Config fields are not valid\n"
            msg = msg+"Fields expected and not found: "+str(not_found)+"\n"
            msg = msg+"Fields found and not expected: "+str(not_expected)+"\n"
            # do not log this message; logger not yet initialized
            raise ValueError(msg)


class validator:

    """Utility functions for validating arguments to command-line scripts"""

    @staticmethod
    def validate_input_file(path_arg):
        valid = True
        if not os.path.exists(path_arg):
            sys.stderr.write("ERROR: Path %s does not exist.\n" % path_arg)
            valid = False
        elif not os.path.isfile(path_arg):
            sys.stderr.write("ERROR: Path %s is not a file.\n" % path_arg)
            valid = False
        elif not os.access(path_arg, os.R_OK):
            sys.stderr.write("ERROR: Path %s is not readable.\n" % path_arg)
            valid = False
        return valid

    @staticmethod
    def validate_output_dir(dir_path):
        """An output directory which does not exist yet is valid if it can be created"""
        valid = True
        if not os.path.exists(dir_path):
            parent_path = os.path.abspath(os.path.join(dir_path, os.pardir))
            if not (os.path.isdir(parent_path) and os.access(parent_path, os.W_OK)):
                sys.stderr.write("ERROR: Directory %s does not exist and cannot be created.\n" \
                                 % dir_path)
                valid = False
        elif not os.path.isdir(dir_path):
            sys.stderr.write("ERROR: Path %s is not a directory.\n" % dir_path)
            valid = False
        elif not os.access(dir_path, os.W_OK):
            sys.stderr.write("ERROR: Directory %s is not writable.\n" % dir_path)
            valid = False
        return valid

    @staticmethod
    def validate_positive_integer(arg, name):
        param = None
        valid = True
        try:
            param = int(arg)
        except ValueError:
            sys.stderr.write("ERROR: %s must be an integer.\n" % name)
            valid = False
        if param is not None and param <= 0:
            sys.stderr.write("ERROR: %s must be greater than zero.\n" % name)
            valid = False
        return valid

    @staticmethod
    def validate_index(bam_path):
        valid = True
        candidates = [bam_path+'.bai', bam_path+'.csi', os.path.splitext(bam_path)[0]+'.bai']
        if not any([os.path.isfile(path) for path in candidates]):
            sys.stderr.write("ERROR: No .bai or .csi index found for %s.\n" % bam_path)
            valid = False
        return valid
