"""In-memory view of a tournament's linked match graph."""

from collections import defaultdict
from collections.abc import Iterable

from .exceptions import MatchNotFound
from .lifecycle import invariant_violations
from .models import TournamentMatch


def successor_slot(match: TournamentMatch) -> int:
    """Slot of the successor match this match's winner is written into."""
    return 1 if match.bracket_position % 2 == 0 else 2


def round_name(round_number: int, total_rounds: int) -> str:
    """Display name for a round, counted back from the final."""
    remaining = total_rounds - round_number
    if remaining == 0:
        return "Final"
    if remaining == 1:
        return "Semifinal"
    if remaining == 2:
        return "Quarterfinal"
    return f"Round of {2 ** (remaining + 1)}"


class Bracket:
    """Matches of one tournament keyed by id, with feeder lookups."""

    def __init__(self, matches: Iterable[TournamentMatch]):
        ordered = sorted(matches, key=lambda m: (m.round, m.bracket_position))
        self.matches: dict[str, TournamentMatch] = {m.id: m for m in ordered}
        self._feeders: dict[str, dict[int, TournamentMatch]] = defaultdict(dict)
        for match in ordered:
            if match.next_match_id is not None:
                self._feeders[match.next_match_id][successor_slot(match)] = match

    def __len__(self) -> int:
        return len(self.matches)

    def __iter__(self):
        return iter(self.matches.values())

    def get(self, match_id: str) -> TournamentMatch:
        try:
            return self.matches[match_id]
        except KeyError:
            raise MatchNotFound(f"Match {match_id} not found") from None

    def successor(self, match: TournamentMatch) -> TournamentMatch | None:
        if match.next_match_id is None:
            return None
        return self.get(match.next_match_id)

    def feeder(self, match: TournamentMatch, slot: int) -> TournamentMatch | None:
        """Match whose winner fills the given slot, if any."""
        return self._feeders.get(match.id, {}).get(slot)

    def feeders(self, match: TournamentMatch) -> list[TournamentMatch]:
        return [m for _, m in sorted(self._feeders.get(match.id, {}).items())]

    @property
    def rounds(self) -> dict[int, list[TournamentMatch]]:
        grouped: dict[int, list[TournamentMatch]] = defaultdict(list)
        for match in self.matches.values():
            grouped[match.round].append(match)
        return dict(grouped)

    @property
    def total_rounds(self) -> int:
        return max((m.round for m in self.matches.values()), default=0)

    @property
    def final(self) -> TournamentMatch | None:
        finals = [m for m in self.matches.values() if m.next_match_id is None]
        return finals[0] if len(finals) == 1 else None

    def validate(self) -> list[str]:
        """Check linkage, round geometry and per-match invariants."""
        problems: list[str] = []
        for match in self.matches.values():
            problems.extend(invariant_violations(match))

        finals = [m for m in self.matches.values() if m.next_match_id is None]
        if self.matches and len(finals) != 1:
            problems.append(f"expected exactly one final, found {len(finals)}")

        for match in self.matches.values():
            if match.next_match_id is None:
                continue
            successor = self.matches.get(match.next_match_id)
            if successor is None:
                problems.append(f"match {match.id} links to missing {match.next_match_id}")
            elif successor.round != match.round + 1:
                problems.append(
                    f"match {match.id} in round {match.round} feeds round {successor.round}"
                )

        rounds = self.rounds
        for number in sorted(rounds):
            if number > 1 and number - 1 in rounds:
                if len(rounds[number]) * 2 != len(rounds[number - 1]):
                    problems.append(
                        f"round {number} has {len(rounds[number])} matches, "
                        f"round {number - 1} has {len(rounds[number - 1])}"
                    )
            for match in rounds[number]:
                if number > 1 and len(self.feeders(match)) != 2:
                    problems.append(f"match {match.id} does not have two feeders")

        return problems
