"""Read-only reference records loaded from bundled assets."""

from __future__ import annotations

import re
from typing import Optional

from sqlmodel import Field, SQLModel

from dnd_sheet.models.character import ability_modifier_for_score

RARITY_WORDS = {
    "common",
    "uncommon",
    "rare",
    "very",
    "legendary",
    "artifact",
    "обычный",
    "необычный",
    "редкий",
    "очень",
    "легендарный",
    "артефакт",
}

# challenge rating -> proficiency bonus
CR_PROFICIENCY: dict[str, int] = {
    "0": 2, "1/8": 2, "1/4": 2, "1/2": 2,
    "1": 2, "2": 2, "3": 2, "4": 2,
    "5": 3, "6": 3, "7": 3, "8": 3,
    "9": 4, "10": 4, "11": 4, "12": 4,
    "13": 5, "14": 5, "15": 5, "16": 5,
    "17": 6, "18": 6, "19": 6, "20": 6,
    "21": 7, "22": 7, "23": 7, "24": 7,
    "25": 8, "26": 8, "27": 8, "28": 8,
    "29": 9, "30": 9,
}


def slugify(value: str) -> str:
    """Return a stable lowercase key for a record name."""
    slug = re.sub(r"[^\w]+", "-", value.strip().lower())
    return slug.strip("-_")


class Spell(SQLModel):
    """Spell reference data."""

    key: str
    name: str
    level: str = ""
    casting_time: str = ""
    range: str = ""
    components: str = ""
    duration: str = ""
    classes: str = ""
    subclasses: str = ""
    ritual: bool = False
    school: str = ""
    concentration: bool = False
    description: str = ""
    upgrades: str = ""

    @property
    def is_cantrip(self) -> bool:
        return self.level.strip().lower() in {"0", "cantrip", "заговор"}


class Feat(SQLModel):
    """Feat reference data."""

    key: str
    name: str
    category: str = ""
    requirements: str = ""
    ability_increase: str = ""
    description: str = ""


class Background(SQLModel):
    """Background reference data."""

    key: str
    name: str
    abilities: str = ""
    feat: str = ""
    skills: str = ""
    tools: str = ""
    equipment: str = ""
    description: str = ""


class MonsterAction(SQLModel):
    name: str
    desc: str = ""
    attack_bonus: Optional[int] = None
    damage_dice: Optional[str] = None
    damage_bonus: Optional[int] = None


class Monster(SQLModel):
    """Normalized bestiary entry."""

    key: str
    name: str
    size: str = ""
    monster_type: str = ""
    alignment: str = ""
    armor_class: int = 10
    hit_points: int = 1
    hit_dice: Optional[str] = None
    speed: str = ""
    strength: int = 10
    dexterity: int = 10
    constitution: int = 10
    intelligence: int = 10
    wisdom: int = 10
    charisma: int = 10
    skills: dict[str, str] = Field(default_factory=dict)
    damage_resistances: Optional[str] = None
    damage_immunities: Optional[str] = None
    condition_immunities: Optional[str] = None
    senses: Optional[str] = None
    languages: Optional[str] = None
    challenge_rating: str = "0"
    xp: Optional[int] = None
    actions: list[MonsterAction] = Field(default_factory=list)

    @property
    def size_type_alignment(self) -> str:
        parts = [part for part in (self.size, self.monster_type, self.alignment) if part]
        return ", ".join(parts)

    @property
    def proficiency_bonus(self) -> int:
        return CR_PROFICIENCY.get(self.challenge_rating.strip(), 2)

    @property
    def passive_perception(self) -> int:
        for skill, bonus in self.skills.items():
            if skill.lower() != "perception":
                continue
            try:
                return 10 + int(str(bonus).strip().lstrip("+"))
            except ValueError:
                break
        return 10 + ability_modifier_for_score(self.wisdom)


class MagicItemName(SQLModel):
    name_ru: str = ""
    name_en: str = ""


class MagicItemTable(SQLModel):
    title: str = ""
    headers: list[str] = Field(default_factory=list)
    rows: list[list[str]] = Field(default_factory=list)


class MagicItem(SQLModel):
    """Magic item reference data."""

    key: str
    names: list[MagicItemName] = Field(default_factory=list)
    rarity: str = ""
    item_type: str = ""
    descriptions: list[str] = Field(default_factory=list)
    properties: list[str] = Field(default_factory=list)
    tables: list[MagicItemTable] = Field(default_factory=list)
    url: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.names:
            first = self.names[0]
            return first.name_ru or first.name_en or "Unknown item"
        return "Unknown item"

    def _headline(self) -> str | None:
        # long first properties are descriptions, not "type, rarity" lines
        if not self.properties or len(self.properties[0]) > 100:
            return None
        return self.properties[0]

    @property
    def extracted_type(self) -> str:
        headline = self._headline()
        if headline is None:
            return self.item_type
        type_part = headline.split(",")[0]
        return type_part.split("(")[0].strip() or self.item_type

    @property
    def extracted_rarity(self) -> str:
        headline = self._headline()
        if headline is None:
            return self.rarity
        parts = headline.split(",")
        if len(parts) >= 2:
            return parts[1].split("(")[0].strip()
        for word in headline.split("(")[0].split():
            if word.strip().lower() in RARITY_WORDS:
                return word.strip()
        return self.rarity
