"""Cadet rank catalogues for each JROTC program."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Rank:
    rank: str
    abbreviation: str
    order: int


def _ranks(rows: list[tuple[str, str]]) -> tuple[Rank, ...]:
    return tuple(Rank(rank=name, abbreviation=abbr, order=idx) for idx, (name, abbr) in enumerate(rows, start=1))


_AIR_FORCE = [
    ("Cadet Airman Basic", "C/AB"),
    ("Cadet Airman", "C/Amn"),
    ("Cadet Airman First Class", "C/A1C"),
    ("Cadet Senior Airman", "C/SrA"),
    ("Cadet Staff Sergeant", "C/SSgt"),
    ("Cadet Technical Sergeant", "C/TSgt"),
    ("Cadet Master Sergeant", "C/MSgt"),
    ("Cadet Senior Master Sergeant", "C/SMSgt"),
    ("Cadet Chief Master Sergeant", "C/CMSgt"),
    ("Cadet Second Lieutenant", "C/2d Lt"),
    ("Cadet First Lieutenant", "C/1st Lt"),
    ("Cadet Captain", "C/Capt"),
    ("Cadet Major", "C/Maj"),
    ("Cadet Lieutenant Colonel", "C/Lt Col"),
    ("Cadet Colonel", "C/Col"),
]

_ARMY = [
    ("Cadet Private", "C/PVT"),
    ("Cadet Private First Class", "C/PFC"),
    ("Cadet Corporal", "C/CPL"),
    ("Cadet Sergeant", "C/SGT"),
    ("Cadet Staff Sergeant", "C/SSG"),
    ("Cadet Sergeant First Class", "C/SFC"),
    ("Cadet Master Sergeant", "C/MSG"),
    ("Cadet First Sergeant", "C/1SG"),
    ("Cadet Sergeant Major", "C/SGM"),
    ("Cadet Second Lieutenant", "C/2LT"),
    ("Cadet First Lieutenant", "C/1LT"),
    ("Cadet Captain", "C/CPT"),
    ("Cadet Major", "C/MAJ"),
    ("Cadet Lieutenant Colonel", "C/LTC"),
    ("Cadet Colonel", "C/COL"),
]

# Navy and Coast Guard share the sea-service ladder.
_SEA_SERVICE = [
    ("Cadet Seaman Recruit", "C/SR"),
    ("Cadet Seaman Apprentice", "C/SA"),
    ("Cadet Seaman", "C/SN"),
    ("Cadet Petty Officer Third Class", "C/PO3"),
    ("Cadet Petty Officer Second Class", "C/PO2"),
    ("Cadet Petty Officer First Class", "C/PO1"),
    ("Cadet Chief Petty Officer", "C/CPO"),
    ("Cadet Senior Chief Petty Officer", "C/SCPO"),
    ("Cadet Master Chief Petty Officer", "C/MCPO"),
    ("Cadet Ensign", "C/ENS"),
    ("Cadet Lieutenant Junior Grade", "C/LTJG"),
    ("Cadet Lieutenant", "C/LT"),
    ("Cadet Lieutenant Commander", "C/LCDR"),
    ("Cadet Commander", "C/CDR"),
    ("Cadet Captain", "C/CAPT"),
]

_MARINE_CORPS = [
    ("Cadet Private", "C/Pvt"),
    ("Cadet Private First Class", "C/PFC"),
    ("Cadet Lance Corporal", "C/LCpl"),
    ("Cadet Corporal", "C/Cpl"),
    ("Cadet Sergeant", "C/Sgt"),
    ("Cadet Staff Sergeant", "C/SSgt"),
    ("Cadet Gunnery Sergeant", "C/GySgt"),
    ("Cadet Master Sergeant", "C/MSgt"),
    ("Cadet First Sergeant", "C/1stSgt"),
    ("Cadet Master Gunnery Sergeant", "C/MGySgt"),
    ("Cadet Sergeant Major", "C/SgtMaj"),
    ("Cadet Second Lieutenant", "C/2ndLt"),
    ("Cadet First Lieutenant", "C/1stLt"),
    ("Cadet Captain", "C/Capt"),
    ("Cadet Major", "C/Maj"),
    ("Cadet Lieutenant Colonel", "C/LtCol"),
    ("Cadet Colonel", "C/Col"),
]

_SPACE_FORCE = [
    ("Cadet Specialist 1", "C/Spc1"),
    ("Cadet Specialist 2", "C/Spc2"),
    ("Cadet Specialist 3", "C/Spc3"),
    ("Cadet Specialist 4", "C/Spc4"),
    ("Cadet Sergeant", "C/Sgt"),
    ("Cadet Technical Sergeant", "C/TSgt"),
    ("Cadet Master Sergeant", "C/MSgt"),
    ("Cadet Senior Master Sergeant", "C/SMSgt"),
    ("Cadet Chief Master Sergeant", "C/CMSgt"),
    ("Cadet Second Lieutenant", "C/2d Lt"),
    ("Cadet First Lieutenant", "C/1st Lt"),
    ("Cadet Captain", "C/Capt"),
    ("Cadet Major", "C/Maj"),
    ("Cadet Lieutenant Colonel", "C/Lt Col"),
    ("Cadet Colonel", "C/Col"),
]

JROTC_RANKS: dict[str, tuple[Rank, ...]] = {
    "air_force": _ranks(_AIR_FORCE),
    "army": _ranks(_ARMY),
    "navy": _ranks(_SEA_SERVICE),
    "marine_corps": _ranks(_MARINE_CORPS),
    "coast_guard": _ranks(_SEA_SERVICE),
    "space_force": _ranks(_SPACE_FORCE),
}


def ranks_for_program(program: str | None) -> tuple[Rank, ...]:
    """Return the ordered rank ladder for a program, or an empty tuple."""

    if not program:
        return ()
    return JROTC_RANKS.get(program, ())


def all_rank_options() -> list[dict[str, str]]:
    options: list[dict[str, str]] = []
    for ranks in JROTC_RANKS.values():
        for rank in ranks:
            options.append({"value": rank.rank, "label": f"{rank.rank} ({rank.abbreviation})"})
    return options


def is_valid_rank(program: str | None, value: str) -> bool:
    """Blank ranks are allowed; otherwise the rank (or abbreviation) must exist for the program."""

    text = (value or "").strip()
    if not text:
        return True
    ranks = ranks_for_program(program)
    if not ranks:
        return True
    lowered = text.lower()
    return any(lowered in (rank.rank.lower(), rank.abbreviation.lower()) for rank in ranks)
