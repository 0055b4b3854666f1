#! /usr/bin/env python3

import json, os, subprocess, sys, tempfile, unittest

from ngs_qc import edits_facet, facet_error, gc_content_facet, general_metrics_facet, \
    missing_index, ngs_qc, reference_mismatch, results, template_length_facet, \
    unsupported_reference_genome

import qc_test_data

class failing_facet(gc_content_facet):

    NAME = 'Failing'
    SECTION = results.EDITS

    def process(self, record):
        if record.query_name == 'r3':
            raise RuntimeError("cannot process %s" % record.query_name)
        super().process(record)


class ngs_qc_with_failure(ngs_qc):

    def get_record_based_facets(self):
        return super().get_record_based_facets() + [failing_facet(self.logger)]


class failing_general_facet(general_metrics_facet):

    def process(self, record):
        if record.query_name == 'r3':
            raise RuntimeError("cannot process %s" % record.query_name)
        super().process(record)


class failing_template_length_facet(template_length_facet):

    def process(self, record):
        if record.query_name == 'r3':
            raise RuntimeError("cannot process %s" % record.query_name)
        super().process(record)


class ngs_qc_with_summary_failures(ngs_qc):

    """General and template length facets fail before they can be summarized"""

    def get_record_based_facets(self):
        facets = super().get_record_based_facets()
        return [failing_general_facet(self.logger),
                failing_template_length_facet(self.logger)] + facets[2:]


class test(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory(prefix='ngs_qc_test_')
        self.tmpdir = self.tmp.name
        self.testdir = os.path.dirname(os.path.realpath(__file__))
        self.bindir = os.path.realpath(os.path.join(self.testdir, '..', 'bin'))
        self.bam_path = qc_test_data.write_bam(self.tmpdir)
        self.fasta_path = qc_test_data.write_fasta(self.tmpdir)
        self.gff_path = qc_test_data.write_gff(self.tmpdir)
        self.genome_path = qc_test_data.write_genome_table(self.tmpdir)
        self.out_dir = os.path.join(self.tmpdir, 'out')
        self.log_path = os.path.join(self.tmpdir, 'test.log')
        self.prefix = 'test'

    def get_config(self):
        return {
            ngs_qc.CONFIG_KEY_ABORT_ON_FACET_ERROR: None,
            ngs_qc.CONFIG_KEY_BAM: self.bam_path,
            ngs_qc.CONFIG_KEY_COVERAGE_BIN_SIZE: 500,
            ngs_qc.CONFIG_KEY_DEBUG: False,
            ngs_qc.CONFIG_KEY_FEATURE_NAMES: None,
            ngs_qc.CONFIG_KEY_FEATURES_GFF: self.gff_path,
            ngs_qc.CONFIG_KEY_LOG: self.log_path,
            ngs_qc.CONFIG_KEY_NUM_RECORDS: None,
            ngs_qc.CONFIG_KEY_OUTPUT_DIR: self.out_dir,
            ngs_qc.CONFIG_KEY_OUTPUT_PREFIX: self.prefix,
            ngs_qc.CONFIG_KEY_REFERENCE_FASTA: self.fasta_path,
            ngs_qc.CONFIG_KEY_REFERENCE_GENOME: self.genome_path,
            ngs_qc.CONFIG_KEY_VERBOSE: False
        }

    def read_section(self, suffix):
        path = os.path.join(self.out_dir, '%s.%s.json' % (self.prefix, suffix))
        with open(path) as f: output = json.loads(f.read())
        return output

    def assert_output_ok(self):
        suffixes = ['summary', 'template_length', 'gc_content', 'quality_scores', 'features',
                    'coverage', 'edits']
        for suffix in suffixes:
            output = self.read_section(suffix)
            self.assertIn('package version', output)
        summary = self.read_section('summary')['summary']
        self.assertEqual(summary['records']['total'], 6)
        self.assertEqual(summary['summary']['duplication pct'], 16.667)
        features = self.read_section('features')['features']
        self.assertEqual(features['records']['gene'], 2)
        self.assertEqual(features['records']['intergenic'], 3)
        coverage = self.read_section('coverage')['coverage']
        self.assertEqual(coverage['bin size'], 500)
        self.assertEqual(sorted(coverage['mean coverage'].keys()), ['chr1', 'chr2', 'chr3'])
        self.assertAlmostEqual(coverage['mean coverage']['chr1'], 28.0/408)
        self.assertEqual(coverage['median coverage']['chr1'], 0)
        self.assertEqual(coverage['median over mean coverage']['chr2'], 1.0)
        self.assertIsNone(coverage['median over mean coverage']['chr3'])
        self.assertEqual(coverage['coverage distribution per sequence']['chr1'],
                         {'0': 385, '1': 18, '2': 5})
        self.assertEqual(coverage['mean coverage per bin']['chr1'], [0.04, 0.016])
        self.assertEqual(coverage['mean coverage per bin']['chr3'], [0.0])
        edits = self.read_section('edits')['edits']
        self.assertEqual(edits['processed'], 5)
        self.assertEqual(edits['median'], 2)
        self.assertFalse(os.path.exists(os.path.join(self.out_dir, 'test.facet_failures.json')))

    def test_default_analysis(self):
        qc = ngs_qc(self.get_config())
        self.assertEqual(qc.first_pass_records, 6)
        # chrUn is not primary, but is in the FASTA reference for edits
        self.assertEqual(qc.second_pass_records, 5)
        self.assertEqual(qc.failures, [])
        paths = qc.write_output()
        self.assertEqual(len(paths), 7)
        self.assert_output_ok()
        edits = [facet for facet in qc.facets if isinstance(facet, edits_facet)]
        self.assertEqual(len(edits), 1)
        self.assertTrue(edits[0].fasta.closed)

    def test_optional_facets(self):
        config = self.get_config()
        config[ngs_qc.CONFIG_KEY_FEATURES_GFF] = None
        config[ngs_qc.CONFIG_KEY_REFERENCE_FASTA] = None
        config[ngs_qc.CONFIG_KEY_COVERAGE_BIN_SIZE] = None
        config[ngs_qc.CONFIG_KEY_NUM_RECORDS] = 3
        qc = ngs_qc(config)
        self.assertEqual(qc.first_pass_records, 3)
        qc_results = qc.get_results()
        self.assertEqual(qc_results.section_names(), [
            results.SUMMARY,
            results.TEMPLATE_LENGTH,
            results.GC_CONTENT,
            results.QUALITY_SCORES,
            results.COVERAGE
        ])
        self.assertEqual(qc_results.get(results.COVERAGE)['bin size'], 100000)
        self.assertEqual(qc_results.get(results.SUMMARY)['records']['total'], 3)

    def test_facet_failure(self):
        config = self.get_config()
        config[ngs_qc.CONFIG_KEY_REFERENCE_FASTA] = None
        with self.assertRaises(facet_error):
            ngs_qc_with_failure(config)
        config[ngs_qc.CONFIG_KEY_ABORT_ON_FACET_ERROR] = False
        qc = ngs_qc_with_failure(config)
        self.assertEqual(len(qc.failures), 1)
        qc.write_output()
        failures = self.read_section('facet_failures')['facet failures']
        self.assertEqual(failures[0]['facet'], 'Failing')
        self.assertEqual(failures[0]['read_name'], 'r3')
        # statistics of the failed facet are incomplete
        self.assertEqual(self.read_section('edits')['edits']['processed'], 2)

    def test_summary_facet_failure(self):
        config = self.get_config()
        config[ngs_qc.CONFIG_KEY_ABORT_ON_FACET_ERROR] = False
        qc = ngs_qc_with_summary_failures(config)
        self.assertEqual([f.facet for f in qc.failures],
                         ['General Metrics', 'Template Length Metrics'])
        paths = qc.write_output()
        self.assertEqual(len(paths), 8)
        summary = self.read_section('summary')['summary']
        self.assertEqual(summary['records']['total'], 2)
        self.assertIsNone(summary['summary'])
        template_length = self.read_section('template_length')['template_length']
        self.assertEqual(template_length['records']['processed'], 2)
        self.assertIsNone(template_length['summary'])
        failures = self.read_section('facet_failures')['facet failures']
        self.assertEqual(len(failures), 2)
        # facets registered after the failures are complete
        self.assertEqual(self.read_section('gc_content')['gc_content']['processed'], 5)

    def test_setup_errors(self):
        config = self.get_config()
        config[ngs_qc.CONFIG_KEY_REFERENCE_GENOME] = 'hg19'
        with self.assertRaises(reference_mismatch):
            ngs_qc(config)
        config[ngs_qc.CONFIG_KEY_REFERENCE_GENOME] = 'no_such_genome'
        with self.assertRaises(unsupported_reference_genome):
            ngs_qc(config)
        config = self.get_config()
        config[ngs_qc.CONFIG_KEY_BAM] = qc_test_data.write_bam(self.tmpdir, 'unindexed.bam',
                                                               index=False)
        with self.assertRaises(missing_index):
            ngs_qc(config)
        config = self.get_config()
        del config[ngs_qc.CONFIG_KEY_DEBUG]
        with self.assertRaises(ValueError):
            ngs_qc(config)

    def run_script(self, name, script_args):
        env = dict(os.environ)
        package_dir = os.path.realpath(os.path.join(self.testdir, '..'))
        env['PYTHONPATH'] = os.pathsep.join([package_dir, env.get('PYTHONPATH', '')])
        args = [sys.executable, os.path.join(self.bindir, name)] + script_args
        return subprocess.run(args, env=env, stdout=subprocess.PIPE, stderr=subprocess.PIPE)

    def test_main_script(self):
        args = [
            '--bam', self.bam_path,
            '--reference-genome', self.genome_path,
            '--reference-fasta', self.fasta_path,
            '--features-gff', self.gff_path,
            '--coverage-bin-size', '500',
            '--out-dir', self.out_dir,
            '--prefix', self.prefix,
            '--log-path', self.log_path
        ]
        result = self.run_script('run_ngs_qc.py', args)
        self.assertEqual(result.returncode, 0, msg=result.stderr.decode())
        self.assert_output_ok()

    def test_main_script_invalid(self):
        unindexed = qc_test_data.write_bam(self.tmpdir, 'unindexed.bam', index=False)
        result = self.run_script('run_ngs_qc.py', ['-b', unindexed, '-g', 'hg19'])
        self.assertEqual(result.returncode, 1)
        result = self.run_script('run_ngs_qc.py', ['-b', self.bam_path, '-g', 'hg19', '-n', '0'])
        self.assertEqual(result.returncode, 1)
        result = self.run_script('run_ngs_qc.py', ['-b', self.bam_path, '-g', 'no_such_genome'])
        self.assertEqual(result.returncode, 1)

    def test_list_reference_genomes(self):
        result = self.run_script('list_reference_genomes.py', [])
        self.assertEqual(result.returncode, 0)
        output = result.stdout.decode()
        self.assertIn('GRCh38_no_alt', output)
        self.assertIn('hg19', output)
        self.assertIn('UCSC', output)

    def tearDown(self):
        self.tmp.cleanup()

if __name__ == '__main__':
    unittest.main()
