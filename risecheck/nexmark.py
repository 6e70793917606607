# Copyright Materialize, Inc. and contributors. All rights reserved.
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file at the root of this repository.
#
# As of the Change Date specified in that file, in accordance with
# the Business Source License, use of this software will be governed
# by the Apache License, Version 2.0.

"""A reference model of the Nexmark queries shipped with risecheck.

The cluster runs the real queries; this module states what they compute, so
the shipped SQL can be reasoned about and tested without a cluster.
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

Q103_THRESHOLD = 20


@dataclass(frozen=True)
class Auction:
    id: int
    item_name: str


@dataclass(frozen=True)
class Bid:
    auction: int
    bidder: int = 0
    price: int = 0


@dataclass(frozen=True)
class Q103Row:
    auction_id: int
    auction_item_name: str


class Q103:
    """Auctions with at least `threshold` bids, as an append-only stream.

    Events may arrive in any order. A row is emitted the first time both the
    auction is known and its bid count reaches the threshold, and is never
    retracted afterwards.

    Auction ids are assumed unique, as Nexmark generates them. A second
    auction with an id already seen is ignored and the first row is kept.
    """

    def __init__(self, threshold: int = Q103_THRESHOLD) -> None:
        if threshold < 1:
            raise ValueError(f"threshold must be positive, got {threshold}")
        self.threshold = threshold
        self._auctions: dict[int, Auction] = {}
        self._bids: Counter[int] = Counter()
        self._emitted: dict[int, Q103Row] = {}

    def on_auction(self, auction: Auction) -> list[Q103Row]:
        self._auctions.setdefault(auction.id, auction)
        return self._maybe_emit(auction.id)

    def on_bid(self, bid: Bid) -> list[Q103Row]:
        self._bids[bid.auction] += 1
        return self._maybe_emit(bid.auction)

    def bid_count(self, auction_id: int) -> int:
        return self._bids[auction_id]

    def results(self) -> list[Q103Row]:
        """All rows emitted so far, in emission order."""
        return list(self._emitted.values())

    def _maybe_emit(self, auction_id: int) -> list[Q103Row]:
        if auction_id in self._emitted:
            return []
        auction = self._auctions.get(auction_id)
        if auction is None or self._bids[auction_id] < self.threshold:
            return []
        row = Q103Row(auction.id, auction.item_name)
        self._emitted[auction_id] = row
        return [row]


def evaluate_q103(
    auctions: Iterable[Auction],
    bids: Iterable[Bid],
    threshold: int = Q103_THRESHOLD,
) -> set[Q103Row]:
    """Batch form of `Q103`: the rows present once every event is in."""
    q = Q103(threshold)
    for bid in bids:
        q.on_bid(bid)
    for auction in auctions:
        q.on_auction(auction)
    return set(q.results())
