"""Collection point for facet metrics, and JSON output"""

import json
import logging
import os

import jsonschema

from ngs_qc.base import base_constants


class results(base_constants):
    """
    Created once per run, after both passes are finished. Each facet deposits its metrics in
    exactly one named section; a section cannot be written twice. On output, each section is
    validated and written as a separate JSON document: <prefix>.<suffix>.json
    """

    SUMMARY = 'summary'
    TEMPLATE_LENGTH = 'template_length'
    GC_CONTENT = 'gc_content'
    QUALITY_SCORES = 'quality_scores'
    FEATURES = 'features'
    COVERAGE = 'coverage'
    EDITS = 'edits'
    FACET_FAILURES = 'facet failures'

    # output order, and filename suffix for each section
    SUFFIXES = {
        SUMMARY: 'summary',
        TEMPLATE_LENGTH: 'template_length',
        GC_CONTENT: 'gc_content',
        QUALITY_SCORES: 'quality_scores',
        FEATURES: 'features',
        COVERAGE: 'coverage',
        EDITS: 'edits',
        FACET_FAILURES: 'facet_failures',
    }

    _COUNT = {'type': 'integer', 'minimum': 0}
    _NUMBER_OR_NULL = {'type': ['number', 'null']}
    _HISTOGRAM = {
        'type': 'object',
        'propertyNames': {'pattern': '^[0-9]+$'},
        'additionalProperties': _COUNT
    }
    _DISTRIBUTION = {
        'type': 'object',
        'required': ['histogram', 'processed', 'ignored', 'mean', 'median'],
        'properties': {
            'histogram': _HISTOGRAM,
            'processed': _COUNT,
            'ignored': _COUNT,
            'mean': _NUMBER_OR_NULL,
            'median': _NUMBER_OR_NULL,
        }
    }
    # null if the facet failed before it was summarized
    _SUMMARY = {'type': ['object', 'null'], 'additionalProperties': _NUMBER_OR_NULL}
    _PER_SEQUENCE_NUMBER = {'type': 'object', 'additionalProperties': _NUMBER_OR_NULL}
    SCHEMAS = {
        SUMMARY: {
            'type': 'object',
            'required': ['records', 'summary'],
            'properties': {
                'records': {'type': 'object', 'additionalProperties': _COUNT},
                'summary': _SUMMARY,
            }
        },
        TEMPLATE_LENGTH: {
            'type': 'object',
            'required': ['histogram', 'records', 'summary'],
            'properties': {
                'histogram': _HISTOGRAM,
                'records': {'type': 'object', 'additionalProperties': _COUNT},
                'summary': _SUMMARY,
            }
        },
        GC_CONTENT: _DISTRIBUTION,
        QUALITY_SCORES: _DISTRIBUTION,
        FEATURES: {
            'type': 'object',
            'required': ['feature names', 'records'],
            'properties': {
                'feature names': {'type': 'object', 'additionalProperties': {'type': 'string'}},
                'records': {'type': 'object', 'additionalProperties': _COUNT},
            }
        },
        COVERAGE: {
            'type': 'object',
            'required': [
                'bin size',
                'mean coverage',
                'median coverage',
                'median over mean coverage',
                'mean coverage per bin',
                'coverage distribution per sequence',
                'ignored'
            ],
            'properties': {
                'bin size': {'type': 'integer', 'minimum': 1},
                'mean coverage': _PER_SEQUENCE_NUMBER,
                'median coverage': _PER_SEQUENCE_NUMBER,
                'median over mean coverage': _PER_SEQUENCE_NUMBER,
                'mean coverage per bin': {
                    'type': 'object',
                    'additionalProperties': {'type': 'array', 'items': {'type': 'number'}}
                },
                'coverage distribution per sequence': {
                    'type': 'object',
                    'additionalProperties': _HISTOGRAM
                },
                'ignored': {'type': 'object'},
            }
        },
        EDITS: _DISTRIBUTION,
        FACET_FAILURES: {
            'type': 'array',
            'items': {
                'type': 'object',
                'required': ['facet', 'phase', 'message'],
            }
        },
    }

    def __init__(self, package_version, logger=None):
        self.package_version = package_version
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.sections = {}

    def deposit(self, section, data):
        if section not in self.SUFFIXES:
            msg = "Unknown results section '%s'" % section
            self.logger.error(msg)
            raise ValueError(msg)
        elif section in self.sections:
            msg = "Results section '%s' has already been deposited" % section
            self.logger.error(msg)
            raise ValueError(msg)
        self.sections[section] = data
        self.logger.debug("Deposited results section '%s'" % section)

    def get(self, section):
        return self.sections.get(section)

    def section_names(self):
        return [name for name in self.SUFFIXES.keys() if name in self.sections]

    def to_json_compatible(self, section):
        """Round-trip through JSON, so validation sees the same keys as the output file"""
        return json.loads(json.dumps(self.sections[section]))

    def validate(self):
        for section in self.section_names():
            try:
                jsonschema.validate(self.to_json_compatible(section), self.SCHEMAS[section])
            except jsonschema.ValidationError as err:
                self.logger.error("Results section '%s' failed validation: %s" % \
                                  (section, err.message))
                raise

    def write(self, output_directory, output_prefix):
        """Validate and write one JSON document per section; return the paths written"""
        self.validate()
        if not os.path.isdir(output_directory):
            os.makedirs(output_directory)
            self.logger.info("Created output directory %s" % output_directory)
        paths = []
        for section in self.section_names():
            filename = "%s.%s.json" % (output_prefix, self.SUFFIXES[section])
            out_path = os.path.join(output_directory, filename)
            output = {
                self.PACKAGE_VERSION_KEY: self.package_version,
                section: self.sections[section]
            }
            with open(out_path, 'w') as out_file:
                out_file.write(json.dumps(output, sort_keys=True, indent=4))
            self.logger.debug("Wrote JSON output to %s" % out_path)
            paths.append(out_path)
        return paths
