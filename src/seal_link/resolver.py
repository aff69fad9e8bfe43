"""Resolve the Seal entity that belongs to a pull request."""

import structlog

from seal_link.backend import Backend
from seal_link.errors import AmbiguousMatchError, NotFoundError
from seal_link.models import ExternalEntity

logger = structlog.get_logger()


def search_term(pr_number: int) -> str:
    """Change records carry the pull request as ``<title> #<number>``."""
    return f"#{pr_number}"


def resolve_entity(backend: Backend, pr_number: int, template_id: str) -> ExternalEntity:
    """Find the unique entity whose title contains ``#<pr_number>`` and whose template matches.

    The search endpoint cannot filter on template, so results are filtered here.

    Raises:
        NotFoundError: No entity matched.
        AmbiguousMatchError: More than one entity matched.
    """
    if not template_id:
        raise ValueError("Seal template ID is required for filtering search results")

    term = search_term(pr_number)
    logger.info("Searching for entity", search_term=term, template_id=template_id)
    results = backend.search_entities(term)
    logger.debug("Search returned entities", count=len(results))

    matches = []
    for entity in results:
        matched = entity.template_id == template_id
        logger.debug("Checking entity template", entity_id=entity.id, template_id=entity.template_id, matched=matched)
        if matched:
            matches.append(entity)

    if not matches:
        logger.error("No entity matched", search_term=term, template_id=template_id)
        raise NotFoundError(f"No Seal entity found matching title '{term}' and template ID '{template_id}'")

    if len(matches) > 1:
        entity_ids = [entity.id for entity in matches]
        logger.error("Multiple entities matched", entity_ids=entity_ids)
        raise AmbiguousMatchError(
            f"Found multiple entities matching title '{term}' and template ID '{template_id}'",
            entity_ids,
        )

    entity = matches[0]
    logger.info("Found unique entity", entity_id=entity.id, title=entity.title)
    return entity
