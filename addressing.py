# addressing.py
import math

ADDRESS_BITS = 32
ADDRESS_MASK = (1 << ADDRESS_BITS) - 1

# log2(64) can come back as 5.999999999
EPS = 1e-8


def floor_log2(n):
    return int(math.floor(math.log2(n) + EPS))


def is_power_of_two(n):
    return n > 0 and (n & (n - 1)) == 0


class AddressLayout:
    """
    Splits a 32-bit address into tag / index / offset for one cache level.
    The tag is taken from the highest `tag_bits` bits of the address.
    """

    def __init__(self, num_sets, block_size):
        self.num_sets = num_sets
        self.block_size = block_size
        self.index_bits = floor_log2(num_sets)
        self.offset_bits = floor_log2(block_size)
        self.tag_bits = ADDRESS_BITS - self.index_bits - self.offset_bits
        self._index_mask = (1 << self.index_bits) - 1

    def index_of(self, addr):
        return (addr >> self.offset_bits) & self._index_mask

    def tag_of(self, addr):
        return addr >> (ADDRESS_BITS - self.tag_bits)

    def reassemble(self, index, tag):
        """Inverse of (index_of, tag_of); offset bits come back as zero."""
        return ((tag << self.index_bits) | index) << self.offset_bits

    def block_address(self, addr):
        return addr & ~((1 << self.offset_bits) - 1) & ADDRESS_MASK

    def __repr__(self):
        return "AddressLayout(tag=%d, index=%d, offset=%d)" % (
            self.tag_bits, self.index_bits, self.offset_bits)
