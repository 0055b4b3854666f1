"""Overlap of records with genomic features from a GFF annotation"""

import bisect

import pybedtools

from ngs_qc.facets import computational_load, record_based_facet
from ngs_qc.results import results


class feature_names(object):
    """
    GFF feature types (column 3) for each category of genomic feature.
    Defaults are the GENCODE feature names.
    """

    FIVE_PRIME_UTR = 'five prime UTR'
    THREE_PRIME_UTR = 'three prime UTR'
    CODING_SEQUENCE = 'coding sequence'
    EXON = 'exon'
    GENE = 'gene'

    DEFAULTS = {
        FIVE_PRIME_UTR: 'five_prime_UTR',
        THREE_PRIME_UTR: 'three_prime_UTR',
        CODING_SEQUENCE: 'CDS',
        EXON: 'exon',
        GENE: 'gene',
    }

    def __init__(self, overrides=None):
        self.names = dict(self.DEFAULTS)
        if overrides is not None:
            unknown = set(overrides.keys()) - set(self.DEFAULTS.keys())
            if len(unknown) > 0:
                raise ValueError("Unknown feature categories: %s" % sorted(unknown))
            self.names.update(overrides)

    def categories(self):
        return list(self.DEFAULTS.keys())

    def gff_type(self, category):
        return self.names[category]

    def to_dict(self):
        return dict(self.names)


class interval_set(object):
    """Sorted, merged, half-open intervals on one sequence, with overlap lookup"""

    def __init__(self, intervals):
        self.starts = []
        self.ends = []
        for (start, end) in sorted(intervals):
            if len(self.ends) > 0 and start <= self.ends[-1]:
                self.ends[-1] = max(self.ends[-1], end)
            else:
                self.starts.append(start)
                self.ends.append(end)

    def __len__(self):
        return len(self.starts)

    def overlaps(self, start, end):
        """True if [start, end) overlaps any interval in the set"""
        i = bisect.bisect_left(self.starts, end) - 1
        return i >= 0 and self.ends[i] > start


class genomic_features_facet(record_based_facet):

    """
    Count mapped primary records overlapping each category of genomic feature, and records
    overlapping no gene (intergenic). A record may count towards several categories.
    """

    NAME = 'Genomic Features'
    LOAD = computational_load.MODERATE
    SECTION = results.FEATURES

    INTERGENIC_KEY = 'intergenic'
    SKIPPED_KEY = 'skipped'

    def __init__(self, logger, gff_path, names=None):
        super().__init__(logger)
        self.gff_path = gff_path
        self.names = names if names is not None else feature_names()
        self.intervals = self.read_features(gff_path)
        self.records = {category: 0 for category in self.names.categories()}
        self.records[self.INTERGENIC_KEY] = 0
        self.records[self.SKIPPED_KEY] = 0
        self.processed = 0

    def read_features(self, gff_path):
        """
        Read the GFF into a dictionary: category -> sequence name -> interval_set
        pybedtools converts GFF coordinates to 0-based, half-open
        """
        # one GFF type may be assigned to more than one category
        wanted = {}
        for category in self.names.categories():
            wanted.setdefault(self.names.gff_type(category), []).append(category)
        raw = {category: {} for category in self.names.categories()}
        total = 0
        for feature in pybedtools.BedTool(gff_path):
            categories = wanted.get(feature.fields[2], [])
            for category in categories:
                raw[category].setdefault(feature.chrom, []).append((feature.start, feature.end))
            if len(categories) > 0:
                total += 1
        self.logger.info("Read %i features of interest from %s" % (total, gff_path))
        features = {}
        for category in raw.keys():
            features[category] = {chrom: interval_set(raw[category][chrom]) \
                                  for chrom in raw[category].keys()}
            if len(features[category]) == 0:
                msg = "No features of type '%s' found in %s" % (self.names.gff_type(category),
                                                                 gff_path)
                self.logger.warning(msg)
        return features

    def overlaps(self, category, chrom, start, end):
        intervals = self.intervals[category].get(chrom)
        return intervals is not None and intervals.overlaps(start, end)

    def process(self, record):
        if record.is_unmapped or record.is_secondary or record.is_supplementary \
           or record.reference_end is None:
            self.records[self.SKIPPED_KEY] += 1
            return
        chrom = record.reference_name
        (start, end) = (record.reference_start, record.reference_end)
        for category in self.names.categories():
            if self.overlaps(category, chrom, start, end):
                self.records[category] += 1
        if not self.overlaps(feature_names.GENE, chrom, start, end):
            self.records[self.INTERGENIC_KEY] += 1
        self.processed += 1

    def summarize(self):
        self.logger.debug("Found genomic feature overlaps for %i records" % self.processed)

    def get_metrics(self):
        return {
            'feature names': self.names.to_dict(),
            'records': dict(self.records),
            self.PROCESSED_KEY: self.processed
        }
