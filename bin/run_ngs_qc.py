#!/usr/bin/env python3

"""Main script to compute quality check metrics for an NGS alignment file"""

import argparse, cProfile, os, sys
from ngs_qc import coverage_facet, feature_names, get_all_reference_genomes, ngs_qc, \
    read_package_version, validator

# command-line option -> feature category
FEATURE_NAME_OPTIONS = {
    'five_prime_utr_feature_name': feature_names.FIVE_PRIME_UTR,
    'three_prime_utr_feature_name': feature_names.THREE_PRIME_UTR,
    'coding_sequence_feature_name': feature_names.CODING_SEQUENCE,
    'exon_feature_name': feature_names.EXON,
    'gene_feature_name': feature_names.GENE,
}

def validate_args(args):
    valid = True

    # flip valid from True to False if a check is failed; never flip back to True
    if args.num_records != None:
        valid = validator.validate_positive_integer(args.num_records, 'Number of records')
    if args.coverage_bin_size != None:
        valid = valid and validator.validate_positive_integer(args.coverage_bin_size,
                                                              'Coverage bin size')
    for path_arg in (args.bam, args.reference_fasta, args.features_gff):
        if path_arg != None:
            valid = valid and validator.validate_input_file(path_arg)
    if valid:
        valid = validator.validate_index(args.bam)
    if args.reference_fasta != None:
        valid = valid and validator.validate_input_file(args.reference_fasta+'.fai')
    genomes = [genome.name for genome in get_all_reference_genomes()]
    if args.reference_genome not in genomes and not os.path.isfile(args.reference_genome):
        sys.stderr.write("ERROR: Reference genome %s is not one of %s, " % \
                         (args.reference_genome, ', '.join(genomes))+\
                         "and is not a sequence table file.\n")
        valid = False
    if args.out_dir != None:
        valid = valid and validator.validate_output_dir(args.out_dir)
    if args.log_path != None:
        parent_path = os.path.abspath(os.path.join(args.log_path, os.pardir))
        valid = valid and validator.validate_output_dir(parent_path)
    return valid

def main():
    parser = argparse.ArgumentParser(description='Quality check metrics for NGS alignment '+\
                                     '(BAM) files.')
    parser.add_argument('-b', '--bam', metavar='PATH', required=True,
                        help='Path to input BAM file, which must be indexed. Required.')
    parser.add_argument('-c', '--coverage-bin-size', metavar='INT',
                        help='Size in bases of the windows used to report mean coverage along '+\
                        'each sequence. Optional; default = %i.' % coverage_facet.DEFAULT_BIN_SIZE)
    parser.add_argument('-C', '--continue-on-facet-error', action='store_true',
                        help='If a facet fails, disable it and continue; the failure is '+\
                        'reported in the output. Default is to abort on the first failure.')
    parser.add_argument('-D', '--debug', action='store_true',
                        help='Most verbose; write messages of priority DEBUG and higher to log')
    parser.add_argument('-f', '--reference-fasta', metavar='PATH',
                        help='Path to indexed FASTA reference used to align the BAM file. '+\
                        'Optional; if given, edit distances will be evaluated.')
    parser.add_argument('-g', '--reference-genome', metavar='NAME', required=True,
                        help='Reference genome used to align the BAM file: a name listed by '+\
                        'list_reference_genomes.py, or the path of a tab-delimited sequence '+\
                        'table. Required.')
    parser.add_argument('-G', '--features-gff', metavar='PATH',
                        help='Path to GFF file of genomic features. Optional; if given, '+\
                        'overlaps with genomic features will be evaluated.')
    parser.add_argument('-l', '--log-path', metavar='PATH', help='Path of file where log output '+\
                        'will be appended. Optional, defaults to STDERR.')
    parser.add_argument('-n', '--num-records', metavar='INT',
                        help='Read at most INT records in the first pass over the BAM file. '+\
                        'Optional; default is to read all records.')
    parser.add_argument('-o', '--out-dir', metavar='PATH',
                        help='Directory for JSON output. Optional; defaults to the current '+\
                        'working directory. Created if it does not exist.')
    parser.add_argument('-p', '--prefix', metavar='PREFIX',
                        help='Prefix for JSON output filenames. Optional; defaults to the BAM '+\
                        'filename without its extension.')
    parser.add_argument('-P', '--profile', action='store_true', help='Write runtime profile to '+\
                        'STDOUT. For development use only.')
    parser.add_argument('-v', '--version', action='version',
                        version=read_package_version(),
                        help='Print the version number of ngs-qc and exit')
    parser.add_argument('-V', '--verbose', action='store_true',
                        help='More verbose; write messages of priority INFO and higher to log')
    for (option, category) in FEATURE_NAME_OPTIONS.items():
        flag = '--'+option.replace('_', '-')
        parser.add_argument(flag, metavar='TYPE',
                            help='GFF feature type for %s. Optional; default = %s.' % \
                            (category, feature_names.DEFAULTS[category]))
    args = parser.parse_args()
    if not validate_args(args):
        print("For usage, run with -h or --help")
        exit(1)
    num_records = None if args.num_records == None else int(args.num_records)
    bin_size = None if args.coverage_bin_size == None else int(args.coverage_bin_size)
    if args.prefix != None:
        prefix = args.prefix
    else:
        prefix = os.path.splitext(os.path.basename(args.bam))[0]
    overrides = {}
    for (option, category) in FEATURE_NAME_OPTIONS.items():
        value = getattr(args, option)
        if value != None:
            overrides[category] = value
    config = {
        ngs_qc.CONFIG_KEY_ABORT_ON_FACET_ERROR: not args.continue_on_facet_error,
        ngs_qc.CONFIG_KEY_BAM: args.bam,
        ngs_qc.CONFIG_KEY_COVERAGE_BIN_SIZE: bin_size,
        ngs_qc.CONFIG_KEY_DEBUG: args.debug,
        ngs_qc.CONFIG_KEY_FEATURE_NAMES: overrides if len(overrides) > 0 else None,
        ngs_qc.CONFIG_KEY_FEATURES_GFF: args.features_gff,
        ngs_qc.CONFIG_KEY_LOG: args.log_path,
        ngs_qc.CONFIG_KEY_NUM_RECORDS: num_records,
        ngs_qc.CONFIG_KEY_OUTPUT_DIR: args.out_dir,
        ngs_qc.CONFIG_KEY_OUTPUT_PREFIX: prefix,
        ngs_qc.CONFIG_KEY_REFERENCE_FASTA: args.reference_fasta,
        ngs_qc.CONFIG_KEY_REFERENCE_GENOME: args.reference_genome,
        ngs_qc.CONFIG_KEY_VERBOSE: args.verbose
    }
    if args.profile:
        # sort order = 2, sorts profile by cumulative time
        cProfile.runctx('ngs_qc(config).write_output()',
                        {'ngs_qc': ngs_qc, 'config': config},
                        {},
                        None,
                        2)
    else:
        qc = ngs_qc(config)
        qc.write_output()

if __name__ == "__main__":
    main()
