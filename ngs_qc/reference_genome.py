"""Reference genome registry: authoritative sequence names, lengths and primary assembly flags"""

import csv
import os

import attr
from pyrsistent import pmap, pvector

from ngs_qc.errors import unsupported_reference_genome


@attr.s(frozen=True)
class genome_sequence(object):
    name = attr.ib()
    length = attr.ib()
    primary = attr.ib(default=True)


class reference_genome(object):
    """
    Read-only registry for one reference genome; shared by reference between the pipeline
    and all facets for the duration of a run
    """

    def __init__(self, name, source, basis, sequences):
        self.name = name
        self.source = source
        self.basis = basis
        self.sequences = pvector(sequences)
        self.by_name = pmap({seq.name: seq for seq in self.sequences})
        if len(self.by_name) != len(self.sequences):
            raise ValueError("Duplicate sequence names in reference genome %s" % name)

    def __contains__(self, name):
        return name in self.by_name

    def get(self, name):
        return self.by_name.get(name)

    def sequence_names(self):
        return [seq.name for seq in self.sequences]

    def primary_assembly(self):
        return [seq for seq in self.sequences if seq.primary]

    def is_primary(self, name):
        seq = self.by_name.get(name)
        return seq is not None and seq.primary

    @classmethod
    def from_tsv(klass, path):
        """
        Read a tab-separated table with columns: name, length, primary (true/false)
        Blank lines and lines starting with '#' are skipped
        """
        sequences = []
        with open(path) as f:
            reader = csv.reader(
                filter(lambda line: line.strip() != "" and line[0] != '#', f),
                delimiter="\t"
            )
            for row in reader:
                if len(row) < 2:
                    raise ValueError("Cannot parse reference genome table %s: '%s'" % (path, row))
                primary = row[2].strip().lower() in ('true', 'yes', '1') if len(row) > 2 else True
                sequences.append(genome_sequence(row[0], int(row[1]), primary))
        name = os.path.basename(path)
        return klass(name, path, 'Custom', sequences)


def _chromosomes(lengths, extra=()):
    names = ['chr%s' % i for i in list(range(1, 23)) + ['X', 'Y', 'M']]
    primary = [genome_sequence(name, length) for (name, length) in zip(names, lengths)]
    return primary + [genome_sequence(name, length, False) for (name, length) in extra]


GRCH38_LENGTHS = [
    248956422, 242193529, 198295559, 190214555, 181538259, 170805979, 159345973,
    145138636, 138394717, 133797422, 135086622, 133275309, 114364328, 107043718,
    101991189, 90338345, 83257441, 80373285, 58617616, 64444167, 46709983, 50818468,
    156040895, 57227415, 16569
]

HG19_LENGTHS = [
    249250621, 243199373, 198022430, 191154276, 180915260, 171115067, 159138663,
    146364022, 141213431, 135534747, 135006516, 133851895, 115169878, 107349540,
    102531392, 90354753, 81195210, 78077248, 59128983, 63025520, 48129895, 51304566,
    155270560, 59373566, 16571
]

BUILT_IN_GENOMES = pvector([
    reference_genome('GRCh38_no_alt', 'NCBI', 'GRCh38',
                     _chromosomes(GRCH38_LENGTHS, [('chrEBV', 171823)])),
    reference_genome('hg19', 'UCSC', 'GRCh37', _chromosomes(HG19_LENGTHS)),
])


def get_all_reference_genomes():
    return list(BUILT_IN_GENOMES)


def get_reference_genome(identifier):
    """Find a built-in genome by name, or read a genome table from a file path"""
    for genome in BUILT_IN_GENOMES:
        if genome.name == identifier:
            return genome
    if identifier is not None and os.path.isfile(identifier):
        return reference_genome.from_tsv(identifier)
    supported = ', '.join([genome.name for genome in BUILT_IN_GENOMES])
    msg = "Reference genome is not supported: %s. " % identifier+\
          "Supported genomes are: %s; or give the path of a sequence table." % supported
    raise unsupported_reference_genome(msg)
