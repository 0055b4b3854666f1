#!/usr/bin/env python3

"""List the reference genomes known to ngs-qc"""

import argparse
from ngs_qc import get_all_reference_genomes, read_package_version

def main():
    parser = argparse.ArgumentParser(description='List the reference genomes supported by ngs-qc.')
    parser.add_argument('-s', '--sequences', action='store_true',
                        help='Also list the sequences of each reference genome')
    parser.add_argument('-v', '--version', action='version', version=read_package_version(),
                        help='Print the version number of ngs-qc and exit')
    args = parser.parse_args()
    print("%-20s %-10s %-10s %s" % ('Name', 'Source', 'Basis', 'Sequences'))
    for genome in get_all_reference_genomes():
        print("%-20s %-10s %-10s %i" % (genome.name, genome.source, genome.basis,
                                        len(genome.sequence_names())))
        if args.sequences:
            for seq in genome.sequences:
                status = 'primary' if seq.primary else 'non-primary'
                print("    %s\t%i\t%s" % (seq.name, seq.length, status))

if __name__ == "__main__":
    main()
