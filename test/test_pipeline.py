#! /usr/bin/env python3

import logging, tempfile, unittest
from unittest import mock

from ngs_qc import facet_error, general_metrics_facet, missing_index, record_based_facet, \
    reference_genome, reference_mismatch, sequence_based_facet, two_pass_pipeline
from ngs_qc.reference_genome import genome_sequence

import qc_test_data

class recording_record_facet(record_based_facet):

    """Append every call to a shared list"""

    def __init__(self, logger, name, calls, fail_on=None):
        super().__init__(logger)
        self.NAME = name
        self.calls = calls
        self.fail_on = fail_on

    def process(self, record):
        self.calls.append((self.NAME, 'process', record.query_name))
        if record.query_name == self.fail_on:
            raise RuntimeError("cannot process %s" % record.query_name)

    def summarize(self):
        self.calls.append((self.NAME, 'summarize', None))

    def get_metrics(self):
        return {}


class recording_sequence_facet(sequence_based_facet):

    def __init__(self, logger, calls, supported=None, fail_on=None):
        super().__init__(logger)
        self.NAME = 'Recorder'
        self.calls = calls
        self.supported = supported
        self.fail_on = fail_on

    def supports_sequence_name(self, name):
        return self.supported is None or name in self.supported

    def setup_sequence(self, seq):
        self.calls.append(('setup', seq.name, None))

    def process_record(self, seq, record):
        self.calls.append(('process', seq.name, record.query_name))
        if record.query_name == self.fail_on:
            raise RuntimeError("cannot process %s" % record.query_name)

    def teardown_sequence(self, seq):
        self.calls.append(('teardown', seq.name, None))

    def get_metrics(self):
        return {}


class test(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory(prefix='ngs_qc_test_')
        self.tmpdir = self.tmp.name
        self.logger = logging.getLogger('ngs_qc_test')
        self.bam_path = qc_test_data.write_bam(self.tmpdir)

    def test_reference_sequences(self):
        pipeline = two_pass_pipeline(self.bam_path, self.logger)
        sequences = pipeline.reference_sequences()
        self.assertEqual([seq.name for seq in sequences], ['chr1', 'chr2', 'chr3', 'chrUn'])
        self.assertEqual([seq.length for seq in sequences], [1000, 500, 200, 100])

    def test_concordance(self):
        genome = reference_genome('three', 'test', 'Custom', [
            genome_sequence('chr1', 100),
            genome_sequence('chr2', 100),
            genome_sequence('chr3', 100)
        ])
        two_pass_pipeline.check_sequence_concordance(['chr1', 'chr2'], genome)
        genome_one = reference_genome('one', 'test', 'Custom', [genome_sequence('chr1', 100)])
        with self.assertRaises(reference_mismatch) as context:
            two_pass_pipeline.check_sequence_concordance(['chr1', 'chr2'], genome_one)
        self.assertEqual(context.exception.sequence_name, 'chr2')
        self.assertIn('chr2', str(context.exception))

    def test_validate_reference_sequences(self):
        pipeline = two_pass_pipeline(self.bam_path, self.logger)
        pipeline.validate_reference_sequences(qc_test_data.make_genome())
        genome = reference_genome('partial', 'test', 'Custom', [
            genome_sequence('chr1', 1000),
            genome_sequence('chr2', 500)
        ])
        with self.assertRaises(reference_mismatch) as context:
            pipeline.validate_reference_sequences(genome)
        self.assertEqual(context.exception.sequence_name, 'chr3')

    def test_check_index(self):
        two_pass_pipeline(self.bam_path, self.logger).check_index()
        unindexed = qc_test_data.write_bam(self.tmpdir, 'unindexed.bam', index=False)
        with self.assertRaises(missing_index):
            two_pass_pipeline(unindexed, self.logger).check_index()

    def test_first_pass_order(self):
        calls = []
        facets = [
            recording_record_facet(self.logger, 'A', calls),
            recording_record_facet(self.logger, 'B', calls)
        ]
        pipeline = two_pass_pipeline(self.bam_path, self.logger)
        self.assertEqual(pipeline.run_first_pass(facets), 6)
        expected = []
        for name in ['r1', 'r2', 'r3', 'r4', 'r5', 'r6']:
            expected.append(('A', 'process', name))
            expected.append(('B', 'process', name))
        expected.append(('A', 'summarize', None))
        expected.append(('B', 'summarize', None))
        self.assertEqual(calls, expected)

    def test_record_cap(self):
        facet = general_metrics_facet(self.logger)
        pipeline = two_pass_pipeline(self.bam_path, self.logger)
        self.assertEqual(pipeline.run_first_pass([facet], num_records=2), 2)
        metrics = facet.get_metrics()
        self.assertEqual(metrics['records']['total'], 2)
        # r2 is a duplicate; denominator is the capped count
        self.assertEqual(metrics['summary']['duplication pct'], 50.0)
        facet = general_metrics_facet(self.logger)
        pipeline = two_pass_pipeline(self.bam_path, self.logger)
        self.assertEqual(pipeline.run_first_pass([facet], num_records=100), 6)

    def test_second_pass(self):
        calls = []
        facet = recording_sequence_facet(self.logger, calls, supported=['chr1', 'chr3'])
        pipeline = two_pass_pipeline(self.bam_path, self.logger)
        self.assertEqual(pipeline.run_second_pass([facet]), 3)
        expected = [
            ('setup', 'chr1', None),
            ('process', 'chr1', 'r1'),
            ('process', 'chr1', 'r2'),
            ('process', 'chr1', 'r3'),
            ('teardown', 'chr1', None),
            # teardown is called for a sequence with no records
            ('setup', 'chr3', None),
            ('teardown', 'chr3', None),
        ]
        self.assertEqual(calls, expected)

    def test_abort_on_facet_error(self):
        calls = []
        facets = [
            recording_record_facet(self.logger, 'A', calls),
            recording_record_facet(self.logger, 'B', calls, fail_on='r3')
        ]
        pipeline = two_pass_pipeline(self.bam_path, self.logger)
        with self.assertRaises(facet_error) as context:
            pipeline.run_first_pass(facets)
        failure = context.exception.failure
        self.assertEqual(failure.facet, 'B')
        self.assertEqual(failure.phase, 'process')
        self.assertEqual(failure.read_name, 'r3')
        self.assertIn('cannot process r3', failure.message)
        self.assertEqual(calls[-1], ('B', 'process', 'r3'))

    def test_continue_on_facet_error(self):
        calls = []
        facets = [
            recording_record_facet(self.logger, 'A', calls),
            recording_record_facet(self.logger, 'B', calls, fail_on='r3')
        ]
        pipeline = two_pass_pipeline(self.bam_path, self.logger, abort_on_facet_error=False)
        self.assertEqual(pipeline.run_first_pass(facets), 6)
        self.assertEqual(len(pipeline.failures), 1)
        self.assertEqual(pipeline.failures[0].facet, 'B')
        a_calls = [call for call in calls if call[0] == 'A']
        b_calls = [call for call in calls if call[0] == 'B']
        self.assertEqual(len(a_calls), 7)
        # B is disabled after the failure, and is not summarized
        self.assertEqual(b_calls[-1], ('B', 'process', 'r3'))
        self.assertEqual(len(b_calls), 3)

    def test_continue_on_sequence_facet_error(self):
        calls = []
        facet = recording_sequence_facet(self.logger, calls, fail_on='r2')
        pipeline = two_pass_pipeline(self.bam_path, self.logger, abort_on_facet_error=False)
        pipeline.run_second_pass([facet])
        self.assertEqual(calls[-1], ('process', 'chr1', 'r2'))
        failure = pipeline.failures[0]
        self.assertEqual(failure.phase, 'process_record')
        self.assertEqual(failure.sequence, 'chr1')
        self.assertEqual(failure.to_dict()['read_name'], 'r2')

    def test_abort_on_sequence_facet_error(self):
        calls = []
        facet = recording_sequence_facet(self.logger, calls, fail_on='r2')
        pipeline = two_pass_pipeline(self.bam_path, self.logger)
        with self.assertRaises(facet_error) as context:
            pipeline.run_second_pass([facet])
        failure = context.exception.failure
        self.assertEqual(failure.phase, 'process_record')
        self.assertEqual(failure.sequence, 'chr1')
        self.assertEqual(failure.read_name, 'r2')
        # traversal stops at the failing record; no teardown, no later sequences
        expected = [
            ('setup', 'chr1', None),
            ('process', 'chr1', 'r1'),
            ('process', 'chr1', 'r2'),
        ]
        self.assertEqual(calls, expected)

    def test_record_cap_stops_reading(self):
        segments = qc_test_data.make_segments(qc_test_data.make_header())
        def truncated_records(until_eof=False):
            yield segments[0]
            yield segments[1]
            raise OSError("truncated file")
        pipeline = two_pass_pipeline(self.bam_path, self.logger)
        facet = general_metrics_facet(self.logger)
        with mock.patch('pysam.AlignmentFile') as alignment_file:
            bam = alignment_file.return_value.__enter__.return_value
            bam.fetch.side_effect = truncated_records
            self.assertEqual(pipeline.run_first_pass([facet], num_records=2), 2)
            self.assertEqual(facet.get_metrics()['records']['total'], 2)
            with self.assertRaises(OSError):
                pipeline.run_first_pass([general_metrics_facet(self.logger)], num_records=3)

    def test_record_cap_invalid(self):
        pipeline = two_pass_pipeline(self.bam_path, self.logger)
        with self.assertRaises(ValueError):
            pipeline.run_first_pass([general_metrics_facet(self.logger)], num_records=0)

    def tearDown(self):
        self.tmp.cleanup()

if __name__ == '__main__':
    unittest.main()
