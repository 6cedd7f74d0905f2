#
#    Copyright (C) 2026 The oioo authors
#
#    This program is free software: you can redistribute it and/or modify
#    it under the terms of the GNU General Public License as
#    published by the Free Software Foundation, either version 3 of the
#    License, or (at your option) any later version.
#
#    This program is distributed in the hope that it will be useful,
#    but WITHOUT ANY WARRANTY; without even the implied warranty of
#    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#    GNU General Public License for more details.
#
#    You should have received a copy of the GNU General Public License
#    along with this program.
#    If not, see <http://www.gnu.org/licenses/>.
#

import collections
import logging
import random

logger = logging.getLogger(__name__)

# Number of empty slots following every occupied slot in the store
SPACING = 6

# Capacity modes
Restricted = collections.namedtuple("Restricted", ["basis", "admit_enabled"])
Standard = collections.namedtuple("Standard", ["basis"])


class InvalidModeException(Exception):
    pass


def _check_basis(basis):
    if isinstance(basis, bool) or not isinstance(basis, int):
        raise ValueError("Capacity basis must be an integer: %r" % (basis,))
    if basis < 0:
        raise ValueError("Capacity basis must not be negative: %d" % basis)


def capacity_for(mode):
    """
    Derive the capacity of the store from a capacity mode.
    :param mode: a Restricted or Standard mode record
    :return: maximum number of occupied slots the store may hold
    :raises InvalidModeException: if mode is neither Restricted nor Standard
    """
    if isinstance(mode, Restricted):
        _check_basis(mode.basis)
        if not isinstance(mode.admit_enabled, bool):
            raise ValueError("admit_enabled must be a bool: %r" % (mode.admit_enabled,))
        if not mode.admit_enabled:
            return 0
        return mode.basis // 4
    if isinstance(mode, Standard):
        _check_basis(mode.basis)
        return mode.basis // 2
    raise InvalidModeException(f"Unknown capacity mode: {mode!r}")


class OIOO:
    """
    One-in-one-out container releasing its items in random order.

    Every item in the store logically occupies a block of one occupied slot followed by SPACING empty slots.
    Only the occupied slots are kept, the spacing enters the index arithmetic of the random selection only.
    Items arriving while the store is at capacity wait in a FIFO overflow queue and move into the store
    whenever a release frees a block.
    Not safe for concurrent use, callers sharing a container must lock around it.
    """

    def __init__(self, mode, rng=None):
        """
        Create an empty container.
        :param mode: a Restricted or Standard mode record, consumed once to derive the capacity
        :param rng: optional random source with a randrange method, defaults to the random module
        """
        self._capacity = capacity_for(mode)
        self._rng = random if rng is None else rng
        self._store = []
        self._queue = collections.deque()
        logger.debug("Created container with capacity %d from %s", self._capacity, mode)

    @property
    def capacity(self):
        return self._capacity

    @property
    def occupied_count(self):
        return len(self._store)

    @property
    def queued_count(self):
        return len(self._queue)

    @property
    def store_length(self):
        """
        Logical length of the store including the spacing slots.
        """
        return len(self._store) * (SPACING + 1)

    def at_capacity(self):
        return self.store_length // (SPACING + 1) >= self._capacity

    def __len__(self):
        return len(self._store) + len(self._queue)

    def __bool__(self):
        return len(self) > 0

    def __repr__(self):
        return f"{self.__class__.__name__}(capacity={self._capacity}, stored={len(self._store)}, " \
               f"queued={len(self._queue)})"

    def admit(self, item):
        """
        Add an item at the end of the store, or at the end of the queue if the store is full.
        :param item: the item to add
        """
        if not self.at_capacity():
            self._store.append(item)
            logger.debug("Admitted item into store block %d", len(self._store) - 1)
        else:
            self._queue.append(item)
            logger.debug("Store at capacity %d, queued item at position %d", self._capacity, len(self._queue) - 1)
        self._check_invariants()

    def release(self):
        """
        Remove and return an item chosen uniformly at random from the occupied slots of the store.
        The freed block is refilled with the front item of the queue, if any.
        :return: the released item or None if the store holds no item
        """
        occupied = len(self._store)
        if occupied == 0:
            return None

        # select among occupied slots only, never landing on spacing
        slot_index = self._rng.randrange(occupied) * (SPACING + 1)
        block_index = slot_index // (SPACING + 1)
        item = self._store.pop(block_index)
        logger.debug("Released block %d of %d at slot %d", block_index, occupied, slot_index)

        if self._queue:
            logger.debug("Refilling store from queue with %d waiting items", len(self._queue))
            self.admit(self._queue.popleft())
        self._check_invariants()
        return item

    def drain(self):
        """
        Release items until the store is empty.
        :return: generator yielding the released items in release order
        """
        while len(self._store) > 0:
            yield self.release()

    def _check_invariants(self):
        assert len(self._store) <= self._capacity, "store exceeds capacity"
        # spacing is never stored, so the padded store length is a multiple of SPACING + 1 by construction
        assert not self._queue or self.at_capacity(), "queued items while store has free capacity"
