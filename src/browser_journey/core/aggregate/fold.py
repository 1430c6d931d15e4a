"""Fold visits into domain and transition aggregates."""

from collections.abc import Iterable, Mapping
from dataclasses import replace

from browser_journey.core.tracking.domain import favicon_url, transition_key
from browser_journey.models.journey import DataSnapshot, DomainStats, Transition, Visit


def fold_visits(
    visits: Iterable[Visit],
    previous_domains: Mapping[str, DomainStats] | None = None,
) -> tuple[dict[str, DomainStats], dict[str, Transition]]:
    """Rebuild domain and transition aggregates from scratch.

    Uses each visit's stored ``from_domain``; nothing is re-attributed. Favicons
    carry over from ``previous_domains`` when the domain was already known.

    Returns:
        Tuple of (domains, transitions).
    """
    previous_domains = previous_domains or {}
    domains: dict[str, DomainStats] = {}
    transitions: dict[str, Transition] = {}

    for visit in visits:
        stats = domains.get(visit.domain)
        if stats is None:
            prior = previous_domains.get(visit.domain)
            domains[visit.domain] = DomainStats(
                visit_count=1,
                first_visit=visit.timestamp,
                last_visit=visit.timestamp,
                favicon=prior.favicon if prior and prior.favicon else favicon_url(visit.domain),
            )
        else:
            domains[visit.domain] = replace(
                stats,
                visit_count=stats.visit_count + 1,
                first_visit=min(stats.first_visit, visit.timestamp),
                last_visit=max(stats.last_visit, visit.timestamp),
            )

        if visit.from_domain and visit.from_domain != visit.domain:
            key = transition_key(visit.from_domain, visit.domain)
            t = transitions.get(key)
            if t is None:
                transitions[key] = Transition(count=1, last_visit=visit.timestamp)
            else:
                transitions[key] = Transition(
                    count=t.count + 1, last_visit=max(t.last_visit, visit.timestamp)
                )

    return domains, transitions


def rebuild_snapshot(
    visits: Iterable[Visit],
    previous_domains: Mapping[str, DomainStats] | None = None,
) -> DataSnapshot:
    """Return a snapshot holding ``visits`` and aggregates folded from them."""
    kept = tuple(visits)
    domains, transitions = fold_visits(kept, previous_domains)
    return DataSnapshot(visits=kept, domains=domains, transitions=transitions)


def append_visit(snapshot: DataSnapshot, visit: Visit) -> DataSnapshot:
    """Append one visit and bump its aggregates in place of a full rebuild.

    ``first_visit`` of an existing domain is never touched here.
    """
    domains = dict(snapshot.domains)
    stats = domains.get(visit.domain)
    if stats is None:
        domains[visit.domain] = DomainStats(
            visit_count=1,
            first_visit=visit.timestamp,
            last_visit=visit.timestamp,
            favicon=favicon_url(visit.domain),
        )
    else:
        domains[visit.domain] = replace(
            stats, visit_count=stats.visit_count + 1, last_visit=visit.timestamp
        )

    transitions = dict(snapshot.transitions)
    if visit.from_domain and visit.from_domain != visit.domain:
        key = transition_key(visit.from_domain, visit.domain)
        t = transitions.get(key)
        count = t.count + 1 if t else 1
        transitions[key] = Transition(count=count, last_visit=visit.timestamp)

    return DataSnapshot(
        visits=(*snapshot.visits, visit),
        domains=domains,
        transitions=transitions,
    )
