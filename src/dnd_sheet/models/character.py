"""Player character model and the rules helpers that hang off it."""

from __future__ import annotations

import base64
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import ConfigDict, model_validator
from sqlmodel import Field, SQLModel

MIN_ABILITY_SCORE = 1
MAX_ABILITY_SCORE = 30
MIN_LEVEL = 1
MAX_LEVEL = 20

# attribute name -> short code used by sheets and the external format
ABILITIES: dict[str, str] = {
    "strength": "str",
    "dexterity": "dex",
    "constitution": "con",
    "intelligence": "int",
    "wisdom": "wis",
    "charisma": "cha",
}

# skill key -> governing ability
SKILLS: dict[str, str] = {
    "acrobatics": "dexterity",
    "animal_handling": "wisdom",
    "arcana": "intelligence",
    "athletics": "strength",
    "deception": "charisma",
    "history": "intelligence",
    "insight": "wisdom",
    "intimidation": "charisma",
    "investigation": "intelligence",
    "medicine": "wisdom",
    "nature": "intelligence",
    "perception": "wisdom",
    "performance": "charisma",
    "persuasion": "charisma",
    "religion": "intelligence",
    "sleight_of_hand": "dexterity",
    "stealth": "dexterity",
    "survival": "wisdom",
}

COINS: tuple[str, ...] = ("copper", "silver", "electrum", "gold", "platinum")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def ability_modifier_for_score(score: int) -> int:
    """Return the D&D modifier for an ability score (rounds down)."""
    return (score - 10) // 2


def proficiency_bonus_for_level(level: int) -> int:
    return 2 + (_clamp(level, MIN_LEVEL, MAX_LEVEL) - 1) // 4


def _flag_map(keys, values: dict[str, bool] | None) -> dict[str, bool]:
    values = values or {}
    return {key: bool(values.get(key, False)) for key in keys}


def write_field(model: SQLModel, field: str, value) -> None:
    """Store a normalized value without re-running assignment validation."""
    if model.__dict__.get(field) != value:
        model.__dict__[field] = value


class ClassResource(SQLModel):
    """A per-rest counter such as rage uses or ki points."""

    model_config = ConfigDict(validate_assignment=True)

    name: str
    current: int = 0
    max: int = 0

    @model_validator(mode="after")
    def _clamp_current(self) -> "ClassResource":
        write_field(self, "max", max(0, self.max))
        write_field(self, "current", _clamp(self.current, 0, self.max))
        return self


class ClassEntry(SQLModel):
    """One class of a (possibly multiclassed) character."""

    model_config = ConfigDict(validate_assignment=True)

    name: str
    level: int = 1
    subclass: Optional[str] = None

    @model_validator(mode="after")
    def _clamp_level(self) -> "ClassEntry":
        write_field(self, "level", _clamp(self.level, MIN_LEVEL, MAX_LEVEL))
        return self


class Character(SQLModel):
    """A player character sheet.

    Validation normalizes out-of-range values: ability scores are clamped to
    ``[1, 30]`` and current hit points to ``[0, max_hit_points]``. The same
    clamps run on plain attribute assignment.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_id)
    name: str
    race: str
    character_class: str
    subclass: Optional[str] = None
    background: str
    alignment: str
    level: int = 1

    strength: int = 10
    dexterity: int = 10
    constitution: int = 10
    intelligence: int = 10
    wisdom: int = 10
    charisma: int = 10

    armor_class: int = 10
    initiative: int = 0
    speed: int = 30
    max_hit_points: int = 10
    hit_points: int = 10
    temporary_hit_points: int = 0
    proficiency_bonus: int = 2

    skills: dict[str, bool] = Field(default_factory=dict)
    skill_expertise: dict[str, bool] = Field(default_factory=dict)
    saving_throws: dict[str, bool] = Field(default_factory=dict)

    personality_traits: str = ""
    ideals: str = ""
    bonds: str = ""
    flaws: str = ""
    features: str = ""
    class_abilities: str = ""

    equipment: list[str] = Field(default_factory=list)
    treasures: list[str] = Field(default_factory=list)

    copper: int = 0
    silver: int = 0
    electrum: int = 0
    gold: int = 0
    platinum: int = 0

    class_resources: dict[str, ClassResource] = Field(default_factory=dict)
    classes: list[ClassEntry] = Field(default_factory=list)

    # base64 text of the portrait image
    avatar: Optional[str] = None

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @model_validator(mode="after")
    def _normalize(self) -> "Character":
        write_field(self, "level", _clamp(self.level, MIN_LEVEL, MAX_LEVEL))
        for attribute in ABILITIES:
            write_field(
                self,
                attribute,
                _clamp(getattr(self, attribute), MIN_ABILITY_SCORE, MAX_ABILITY_SCORE),
            )
        write_field(self, "max_hit_points", max(0, self.max_hit_points))
        write_field(self, "temporary_hit_points", max(0, self.temporary_hit_points))
        write_field(self, "hit_points", _clamp(self.hit_points, 0, self.max_hit_points))
        for coin in COINS:
            write_field(self, coin, max(0, getattr(self, coin)))
        write_field(self, "skills", _flag_map(SKILLS, self.skills))
        write_field(self, "skill_expertise", _flag_map(SKILLS, self.skill_expertise))
        write_field(self, "saving_throws", _flag_map(ABILITIES, self.saving_throws))
        return self

    # -- vitality -----------------------------------------------------------

    def set_hit_points(self, value: int) -> int:
        self.hit_points = _clamp(value, 0, self.max_hit_points)
        return self.hit_points

    def set_max_hit_points(self, value: int) -> None:
        self.max_hit_points = max(0, value)
        self.hit_points = _clamp(self.hit_points, 0, self.max_hit_points)

    def set_temporary_hit_points(self, value: int) -> None:
        self.temporary_hit_points = max(0, value)

    def apply_damage(self, amount: int) -> int:
        """Apply damage, draining temporary hit points first."""
        remaining = max(0, amount)
        absorbed = min(self.temporary_hit_points, remaining)
        self.temporary_hit_points -= absorbed
        remaining -= absorbed
        return self.set_hit_points(self.hit_points - remaining)

    def heal(self, amount: int) -> int:
        return self.set_hit_points(self.hit_points + max(0, amount))

    @property
    def is_unconscious(self) -> bool:
        return self.hit_points == 0

    # -- abilities and skills -------------------------------------------------

    def set_ability_score(self, ability: str, value: int) -> int:
        if ability not in ABILITIES:
            raise ValueError(f"Unknown ability: {ability}")
        clamped = _clamp(value, MIN_ABILITY_SCORE, MAX_ABILITY_SCORE)
        setattr(self, ability, clamped)
        return clamped

    def ability_scores(self) -> dict[str, int]:
        return {ability: getattr(self, ability) for ability in ABILITIES}

    def ability_modifier(self, ability: str) -> int:
        if ability not in ABILITIES:
            raise ValueError(f"Unknown ability: {ability}")
        return ability_modifier_for_score(getattr(self, ability))

    def skill_modifier(self, skill: str) -> int:
        if skill not in SKILLS:
            raise ValueError(f"Unknown skill: {skill}")
        modifier = self.ability_modifier(SKILLS[skill])
        if self.skill_expertise.get(skill):
            modifier += 2 * self.proficiency_bonus
        elif self.skills.get(skill):
            modifier += self.proficiency_bonus
        return modifier

    def saving_throw_modifier(self, ability: str) -> int:
        modifier = self.ability_modifier(ability)
        if self.saving_throws.get(ability):
            modifier += self.proficiency_bonus
        return modifier

    @property
    def passive_perception(self) -> int:
        return 10 + self.skill_modifier("perception")

    # -- multiclassing --------------------------------------------------------

    @property
    def total_level(self) -> int:
        if self.classes:
            return sum(entry.level for entry in self.classes)
        return self.level

    def migrate_classes(self) -> bool:
        """Seed ``classes`` from the single class fields; returns True if it ran."""
        if self.classes or not self.character_class:
            return False
        self.classes = [
            ClassEntry(
                name=self.character_class,
                level=self.level,
                subclass=self.subclass,
            )
        ]
        return True

    def sync_primary_class(self) -> None:
        """Mirror the class list into ``level``/``character_class``/``subclass``."""
        if not self.classes:
            return
        primary = self.classes[0]
        self.character_class = primary.name
        self.subclass = primary.subclass
        self.level = _clamp(self.total_level, MIN_LEVEL, MAX_LEVEL)
        self.proficiency_bonus = proficiency_bonus_for_level(self.level)

    def add_class(self, name: str, level: int = 1, subclass: str | None = None) -> None:
        self.migrate_classes()
        self.classes.append(ClassEntry(name=name, level=level, subclass=subclass))
        self.sync_primary_class()

    def remove_class(self, name: str) -> None:
        self.classes = [entry for entry in self.classes if entry.name != name]
        self.sync_primary_class()

    # -- resources ------------------------------------------------------------

    def set_resource(self, key: str, name: str, maximum: int, current: int | None = None) -> None:
        self.class_resources[key] = ClassResource(
            name=name,
            max=maximum,
            current=maximum if current is None else current,
        )

    def use_resource(self, key: str, amount: int = 1) -> int:
        resource = self.class_resources.get(key)
        if resource is None:
            raise KeyError(key)
        if resource.current < amount:
            raise ValueError(f"Not enough {resource.name} remaining")
        resource.current -= amount
        return resource.current

    def restore_resources(self) -> None:
        for resource in self.class_resources.values():
            resource.current = resource.max

    # -- avatar ---------------------------------------------------------------

    def set_avatar(self, data: bytes | None) -> None:
        self.avatar = base64.b64encode(data).decode("ascii") if data else None

    def avatar_bytes(self) -> bytes | None:
        if self.avatar is None:
            return None
        return base64.b64decode(self.avatar)

    # -- bookkeeping ----------------------------------------------------------

    @property
    def total_gold_value(self) -> float:
        return (
            self.copper / 100
            + self.silver / 10
            + self.electrum / 2
            + self.gold
            + self.platinum * 10
        )

    def touch(self) -> None:
        self.updated_at = _utc_now()

    def duplicate(self) -> "Character":
        now = _utc_now()
        return self.model_copy(
            update={
                "id": new_id(),
                "name": f"{self.name} (copy)",
                "created_at": now,
                "updated_at": now,
            },
            deep=True,
        )
