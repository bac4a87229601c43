"""Dream creation and keyword-based archetype metadata extraction."""
from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import DreamNotFoundError, PersistenceWriteError
from app.db.models.dream import Dream
from app.services.user_service import get_or_create_user

logger = logging.getLogger(__name__)

TARGET_ROLES = (
    "senior product manager", "lead product manager", "product manager", "engineering manager",
    "machine learning engineer", "software engineer", "frontend developer", "backend developer",
    "data scientist", "data analyst", "ux designer", "ui designer", "graphic designer", "web designer",
    "marketing manager", "growth manager", "content creator", "copywriter", "design lead", "team lead",
    "head of", "vice president", "director", "chief", "ceo", "cto", "cmo", "vp", "pm",
    "startup founder", "founder", "entrepreneur", "business owner", "independent consultant",
    "coach", "consultant", "therapist", "counselor", "trainer", "freelancer", "contractor", "developer",
)
DOMAINS = (
    "ai tools", "artificial intelligence", "machine learning", "ai-first", "fintech", "edtech", "healthtech",
    "blockchain", "crypto", "saas", "software", "mobile apps", "web development", "storytelling",
    "personal branding", "content creation", "social media", "marketing", "advertising", "brand strategy",
    "creative strategy", "video production", "photography", "graphic design", "digital wellness",
    "mental health", "fitness", "nutrition", "mindfulness", "coaching", "personal development", "habits",
    "e-commerce", "retail", "consulting", "real estate", "finance", "healthcare", "education", "non-profit",
    "sustainability",
)
CURRENT_ROLES = (
    "customer success", "customer support", "account manager", "agency marketing", "marketing coordinator",
    "marketing assistant", "freelancing", "freelancer", "contractor", "consultant", "ux designer",
    "ui designer", "graphic designer", "software engineer", "developer", "analyst", "coordinator",
    "manager", "associate", "specialist", "executive",
)
LOCATIONS = (
    "san francisco", "silicon valley", "palo alto", "mountain view", "new york", "nyc", "manhattan",
    "brooklyn", "austin", "dallas", "houston", "seattle", "portland", "denver", "boulder", "los angeles",
    "santa monica", "chicago", "boston", "washington dc", "miami", "atlanta", "nashville", "london",
    "berlin", "amsterdam", "paris", "barcelona", "madrid", "dublin", "edinburgh", "zurich", "geneva",
    "toronto", "vancouver", "montreal", "sydney", "melbourne", "singapore", "hong kong", "tokyo", "dubai",
    "abu dhabi", "tel aviv", "bangalore", "mumbai",
)
MOTIVATIONS = (
    "ready to lead", "ready to own", "ready to scale", "ready to build", "finally creating",
    "finally building", "finally leading", "shape how millions", "impact millions", "scale my ideas",
    "amplify stories", "amplify voices", "help people", "done playing small", "finally prioritizing",
    "prioritize peace", "creating from purpose", "purpose over pressure", "peace over performance",
    "own my voice", "show up fully", "be authentic", "break free", "escape corporate",
    "leave agency life", "make a difference", "change lives", "solve problems",
    "build something meaningful", "create real impact",
)

_ASPIRATION_CUES = ("as a", "become a", "being a", "working as", "role as")
_TRANSITION_CUES = ("transitioning from", "coming from", "leaving", "after", "from")
_LOCATION_CUES = ("based in", "located in", "working in", "living in", "in", "from")
_MOTIVATION_CUES = ("because", "since", "so that", "as")
_UPPERCASE_WORDS = {"ai": "AI", "ceo": "CEO", "cto": "CTO", "cmo": "CMO", "vp": "VP", "pm": "PM",
                    "ux": "UX", "ui": "UI", "nyc": "NYC", "dc": "DC", "saas": "SaaS"}


def extract_dream_metadata(dream_text: Optional[str]) -> Dict[str, object]:
    """Pull target role, domain, current role, location and motivation out of free text."""
    text = (dream_text or "").lower().strip()
    metadata: Dict[str, object] = {
        "targetRole": _title(_after_cue(text, _ASPIRATION_CUES, TARGET_ROLES, anchored=True) or _anywhere(text, TARGET_ROLES)),
        "domain": _title(_anywhere(text, DOMAINS)),
        "currentRole": _title(_after_cue(text, _TRANSITION_CUES, CURRENT_ROLES, anchored=False)),
        "location": _title(_after_cue(text, _LOCATION_CUES, LOCATIONS, anchored=True) or _anywhere(text, LOCATIONS)),
        "motivation": _sentence(_after_cue(text, _MOTIVATION_CUES, MOTIVATIONS, anchored=False)),
    }
    found = sum(1 for value in metadata.values() if value)
    metadata["confidence"] = round(found / 5 * 100)
    return metadata


def _contains(text: str, phrase: str) -> bool:
    return re.search(rf"(?<![a-z]){re.escape(phrase)}(?![a-z])", text) is not None


def _anywhere(text: str, candidates: Iterable[str]) -> str:
    for candidate in candidates:
        if _contains(text, candidate):
            return candidate
    return ""


def _after_cue(text: str, cues: Iterable[str], candidates: Iterable[str], *, anchored: bool) -> str:
    candidates = list(candidates)
    for cue in cues:
        match = re.search(rf"(?<![a-z]){re.escape(cue)}(?![a-z])", text)
        if not match:
            continue
        rest = text[match.end():].strip()
        rest = re.sub(r"^(a|an|the)\s+", "", rest)
        for candidate in candidates:
            if anchored and (rest == candidate or re.match(rf"{re.escape(candidate)}(?![a-z])", rest)):
                return candidate
            if not anchored and _contains(rest, candidate):
                return candidate
    return ""


def _title(value: str) -> str:
    return " ".join(_UPPERCASE_WORDS.get(word, word.capitalize()) for word in value.split())


def _sentence(value: str) -> str:
    return value[:1].upper() + value[1:] if value else ""


def build_archetype_data(dream_text: str, archetype_type: Optional[str] = None) -> Dict[str, object]:
    metadata = extract_dream_metadata(dream_text)
    confidence = metadata.pop("confidence")
    return {
        "type": archetype_type,
        **metadata,
        "parsingAccuracy": confidence,
    }


def create_dream(
    db: Session,
    *,
    user_id: UUID,
    dream_text: str,
    confidence: int,
    time_horizon: int,
    learning_style: str,
    time_commitment: str,
    archetype_type: Optional[str] = None,
) -> Dream:
    try:
        get_or_create_user(db, user_id)
        dream = Dream(
            user_id=user_id,
            dream_text=dream_text.strip(),
            confidence=confidence,
            time_horizon=time_horizon,
            learning_style=learning_style,
            time_commitment=time_commitment,
            archetype_data=build_archetype_data(dream_text, archetype_type),
            status="active",
            plan_generated=False,
        )
        db.add(dream)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create dream")
        raise PersistenceWriteError("Failed to create dream.") from exc

    db.refresh(dream)
    logger.info("Dream %s created (metadata confidence %s)", dream.id, dream.archetype_data.get("parsingAccuracy"))
    return dream


def load_dream(db: Session, dream_id: UUID, user_id: UUID) -> Dream:
    dream = db.execute(
        select(Dream).where(Dream.id == dream_id, Dream.user_id == user_id)
    ).scalar_one_or_none()
    if dream is None:
        raise DreamNotFoundError(dream_id)
    return dream


def list_active_dreams(db: Session, user_id: UUID) -> List[Dream]:
    return list(
        db.execute(
            select(Dream)
            .where(Dream.user_id == user_id, Dream.status == "active")
            .order_by(Dream.created_at.desc())
        ).scalars()
    )


def set_current_day(db: Session, dream: Dream, current_day: int) -> Dream:
    dream.current_day = current_day
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to update current day")
        raise PersistenceWriteError("Failed to update current day.", {"dream_id": str(dream.id)}) from exc
    db.refresh(dream)
    return dream
