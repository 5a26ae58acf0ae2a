"""Foundation module seed data: five modules per supported language."""

from __future__ import annotations

import enum
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.database import dialect_insert
from linguacred.db.models import FoundationModule

logger = logging.getLogger(__name__)

MODULE_CREDITS_REWARD = 100


class ModuleType(str, enum.Enum):
    SCRIPT_WRITING = "SCRIPT_WRITING"
    PHONETICS_PRONUNCIATION = "PHONETICS_PRONUNCIATION"
    VOCABULARY_BUILDING = "VOCABULARY_BUILDING"
    GRAMMAR_FUNDAMENTALS = "GRAMMAR_FUNDAMENTALS"
    CULTURAL_CONTEXT = "CULTURAL_CONTEXT"


# (module type, order, required quiz score)
MODULE_LAYOUT: list[tuple[ModuleType, int, int]] = [
    (ModuleType.SCRIPT_WRITING, 1, 85),
    (ModuleType.PHONETICS_PRONUNCIATION, 2, 80),
    (ModuleType.VOCABULARY_BUILDING, 3, 75),
    (ModuleType.GRAMMAR_FUNDAMENTALS, 4, 75),
    (ModuleType.CULTURAL_CONTEXT, 5, 70),
]

MODULE_TEXT: dict[str, dict[ModuleType, tuple[str, str]]] = {
    "russian": {
        ModuleType.SCRIPT_WRITING: (
            "Cyrillic Alphabet Mastery",
            "Master the 33 letters of the Cyrillic alphabet, including uppercase, "
            "lowercase, and handwriting practice.",
        ),
        ModuleType.PHONETICS_PRONUNCIATION: (
            "Russian Phonetics & Pronunciation",
            "Learn Russian sound system, stress patterns, and pronunciation rules "
            "for clear communication.",
        ),
        ModuleType.VOCABULARY_BUILDING: (
            "Essential Russian Vocabulary",
            "Build a foundation of 1000+ essential Russian words for daily communication.",
        ),
        ModuleType.GRAMMAR_FUNDAMENTALS: (
            "Russian Grammar Basics",
            "Understand Russian case system, verb conjugation, and sentence structure basics.",
        ),
        ModuleType.CULTURAL_CONTEXT: (
            "Russian Culture & Etiquette",
            "Learn Russian social etiquette, cultural norms, and communication styles.",
        ),
    },
    "japanese": {
        ModuleType.SCRIPT_WRITING: (
            "Hiragana, Katakana & Basic Kanji",
            "Master Hiragana (46), Katakana (46), and 50 essential Kanji characters "
            "with proper stroke order.",
        ),
        ModuleType.PHONETICS_PRONUNCIATION: (
            "Japanese Phonetics & Pitch Accent",
            "Learn Japanese mora system, pitch accent, and natural pronunciation patterns.",
        ),
        ModuleType.VOCABULARY_BUILDING: (
            "Essential Japanese Vocabulary",
            "Build essential vocabulary for daily life, work, and social interactions in Japanese.",
        ),
        ModuleType.GRAMMAR_FUNDAMENTALS: (
            "Japanese Grammar Fundamentals",
            "Understand Japanese sentence structure, particles, and verb forms.",
        ),
        ModuleType.CULTURAL_CONTEXT: (
            "Japanese Culture & Social Etiquette",
            "Learn Japanese social hierarchy, keigo (honorific language), and cultural practices.",
        ),
    },
    "korean": {
        ModuleType.SCRIPT_WRITING: (
            "Hangul Writing System",
            "Master Hangul consonants, vowels, and syllable block formation for reading and writing.",
        ),
        ModuleType.PHONETICS_PRONUNCIATION: (
            "Korean Phonetics & Pronunciation",
            "Learn Korean sound system, consonant tensing, and pronunciation rules.",
        ),
        ModuleType.VOCABULARY_BUILDING: (
            "Essential Korean Vocabulary",
            "Build essential Korean vocabulary for daily communication and social interaction.",
        ),
        ModuleType.GRAMMAR_FUNDAMENTALS: (
            "Korean Grammar Basics",
            "Understand Korean sentence structure, honorific system, and verb conjugation.",
        ),
        ModuleType.CULTURAL_CONTEXT: (
            "Korean Culture & Hierarchy",
            "Learn Korean social hierarchy, age-based respect system, and cultural customs.",
        ),
    },
}


def module_templates(language: str) -> list[dict[str, Any]]:
    """Row values for the five foundation modules of ``language``."""
    language = language.strip().lower()
    texts = MODULE_TEXT.get(language, {})
    rows = []
    for module_type, order, required in MODULE_LAYOUT:
        title, description = texts.get(
            module_type,
            (f"{module_type.value} for {language}", f"Learn {module_type.value} for {language}"),
        )
        rows.append({
            "language": language,
            "module_type": module_type.value,
            "title": title,
            "description": description,
            "order_index": order,
            "required_score": required,
            "credits_reward": MODULE_CREDITS_REWARD,
            "is_active": True,
        })
    return rows


async def seed_foundation_modules(db: AsyncSession, languages: list[str]) -> int:
    """Insert missing modules for each language. Existing rows are left untouched.

    Returns the number of modules created.
    """
    created = 0
    for language in languages:
        for values in module_templates(language):
            stmt = dialect_insert(db, FoundationModule).values(**values)
            stmt = stmt.on_conflict_do_nothing(
                index_elements=["language", "module_type"]
            ).returning(FoundationModule.id)
            result = await db.execute(stmt)
            if result.scalar_one_or_none() is not None:
                created += 1

    await db.commit()
    logger.info("Seeded %d foundation modules for %s", created, ", ".join(languages))
    return created
