"""Fixed-capacity integer histogram"""

import array

from ngs_qc.errors import bin_out_of_range


class histogram(object):
    """
    Zero-based histogram of non-negative integer observations, with a capacity fixed at
    construction. Bin i holds the number of observations with value i.

    Two usage shapes:
    - large and sparse, sized to a reference sequence length, for per-position coverage
    - small, for scalar metrics such as template length or coverage depth

    Counts are held in an unsigned 64-bit array, so a histogram sized to a chromosome costs
    8 bytes per position. Statistics of an empty histogram are None.
    """

    def __init__(self, capacity):
        if capacity < 0:
            raise ValueError("Histogram capacity cannot be negative: %i" % capacity)
        self.capacity = capacity
        self.counts = array.array('Q', [0]) * capacity
        self.count_total = 0
        self.first_bin = None
        self.last_bin = None

    def __len__(self):
        return self.capacity

    def increment(self, value):
        """Add one observation; raise bin_out_of_range without changing state if value is invalid"""
        if value < 0 or value >= self.capacity:
            raise bin_out_of_range(value, self.capacity)
        self.counts[value] += 1
        self.count_total += 1
        if self.first_bin is None or value < self.first_bin:
            self.first_bin = value
        if self.last_bin is None or value > self.last_bin:
            self.last_bin = value

    def get(self, hist_bin):
        if 0 <= hist_bin < self.capacity:
            return self.counts[hist_bin]
        else:
            return 0

    def total(self):
        return self.count_total

    def range_start(self):
        """First bin ever incremented, or None"""
        return self.first_bin

    def range_stop(self):
        """Last bin ever incremented (inclusive), or None"""
        return self.last_bin

    def populated_bins(self):
        """Iterate over bin indices from range_start to range_stop, inclusive"""
        if self.first_bin is None:
            return range(0)
        return range(self.first_bin, self.last_bin+1)

    def mean(self):
        if self.count_total == 0:
            return None
        weighted = 0
        for i in self.populated_bins():
            weighted += i * self.counts[i]
        return float(weighted) / self.count_total

    def median(self):
        """
        Lower median: the first bin at which the cumulative count reaches ceil(total/2).
        For an even total, this is the lower of the two middle observations;
        eg. observations [1, 2, 3, 4] have median 2.
        """
        if self.count_total == 0:
            return None
        rank = (self.count_total + 1) // 2
        cumulative = 0
        for i in self.populated_bins():
            cumulative += self.counts[i]
            if cumulative >= rank:
                return i
        # unreachable while count_total equals the sum of counts
        raise RuntimeError("Histogram count total is inconsistent with bin counts")

    def sum_range(self, start, stop):
        """Sum of counts for bins in [start, stop)"""
        return sum(self.counts[max(start, 0):min(stop, self.capacity)])

    def to_dict(self):
        """Populated bins as a dictionary; JSON export converts the keys to strings"""
        output = {}
        for i in self.populated_bins():
            if self.counts[i] > 0:
                output[i] = self.counts[i]
        return output
