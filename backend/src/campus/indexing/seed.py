"""Load users and posts from a YAML seed file.

Format:

    users:
      - name: Asha Patil
        email: asha@example.edu
        department: Computer
        year: TE
    posts:
      - author: asha@example.edu
        title: How to prepare for the placement aptitude test?
        content: ...
        department: Computer

Users are matched by email, so loading the same file twice does not
duplicate them.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from campus.enrichment.service import ContentEnricher
from campus.errors import ValidationError
from campus.posts.schemas import Department
from campus.posts.store import PostStore

logger = logging.getLogger(__name__)


@dataclass
class SeedReport:
    """What a seed run created."""

    users_created: int = 0
    posts_created: int = 0


def _require(entry: dict[str, Any], key: str, kind: str) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Seed {kind} is missing {key!r}: {entry!r}")
    return value.strip()


def _department(value: str) -> str:
    try:
        return Department(value).value
    except ValueError:
        raise ValidationError(f"Unknown department in seed file: {value!r}") from None


def read_seed_file(path: Path) -> dict[str, list[dict[str, Any]]]:
    """Parse and shape-check a seed file.

    Raises:
        ValidationError: If the file is not valid YAML or has the wrong shape.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid seed file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"Seed file {path} must contain a mapping")

    shaped: dict[str, list[dict[str, Any]]] = {}
    for key in ("users", "posts"):
        entries = data.get(key) or []
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise ValidationError(f"'{key}' in {path} must be a list of mappings")
        shaped[key] = entries
    return shaped


async def load_seed_file(
    path: Path,
    store: PostStore,
    enricher: Optional[ContentEnricher] = None,
) -> SeedReport:
    """Create the users and posts listed in a seed file.

    Args:
        path: YAML seed file.
        store: Post store to write to.
        enricher: When given, posts are enriched as they are created;
            otherwise they are saved without embeddings for a later backfill.

    Returns:
        Counts of created users and posts.

    Raises:
        ValidationError: If the file is malformed or a post names an unknown author.
    """
    data = read_seed_file(path)
    report = SeedReport()
    user_ids: dict[str, str] = {}

    for entry in data["users"]:
        email = _require(entry, "email", "user")
        existing = store.get_user_by_email(email)
        if existing is None:
            existing = store.add_user(
                name=_require(entry, "name", "user"),
                email=email,
                department=_department(_require(entry, "department", "user")),
                year=str(entry.get("year", "FE")),
            )
            report.users_created += 1
        user_ids[email] = existing.id

    for entry in data["posts"]:
        author_email = _require(entry, "author", "post")
        author_id = user_ids.get(author_email)
        if author_id is None:
            author = store.get_user_by_email(author_email)
            if author is None:
                raise ValidationError(f"Seed post author {author_email!r} is not a known user")
            author_id = author.id

        title = _require(entry, "title", "post")
        body = _require(entry, "content", "post")
        department = _department(entry.get("department", "General"))

        if enricher is not None:
            enrichment = await enricher.enrich(title, body)
            store.create_post(
                author_id,
                title,
                body,
                department,
                embedding=enrichment.embedding,
                summary=enrichment.summary,
                sentiment=enrichment.sentiment,
                tags=enrichment.tags,
            )
        else:
            store.create_post(author_id, title, body, department)
        report.posts_created += 1

    logger.info(
        "Seeded %d users and %d posts from %s", report.users_created, report.posts_created, path
    )
    return report
