"""
In-memory template repository.

Templates are stored as immutable snapshots: updates build a new AdTemplate and
swap it in, so a job that fetched a template keeps the version it started with.
"""

import logging
import math
import threading
from typing import Dict, Optional
from uuid import uuid4

from bulkads.errors import TemplateNotFoundError, TemplateValidationError
from bulkads.templates.models import (
    AdTemplate, Budget, PaginationInfo, TemplateCreate, TemplateList,
    TemplateUpdate, utc_now
)

logger = logging.getLogger(__name__)

class TemplateStore:
    """Keyed store of ad templates safe for concurrent access."""

    def __init__(self):
        self._templates: Dict[str, AdTemplate] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _normalize_budget(budget: Budget) -> Budget:
        """Coerce the budget amount to a positive float."""
        amount = budget.amount
        if isinstance(amount, str):
            try:
                amount = float(amount)
            except ValueError:
                amount = math.nan

        if math.isnan(amount) or amount <= 0:
            raise TemplateValidationError(
                "Invalid budget amount. Must be a positive number.",
                field="budget.amount"
            )
        return budget.model_copy(update={"amount": amount})

    def create(self, data: TemplateCreate) -> AdTemplate:
        """
        Create a new template.

        Args:
            data: Template payload

        Returns:
            AdTemplate: Stored template with generated ID

        Raises:
            TemplateValidationError: If the budget amount is not a positive number
        """
        now = utc_now()
        template = AdTemplate(
            id=str(uuid4()),
            name=data.name,
            description=data.description or "",
            ad_copy=data.ad_copy,
            targeting=data.targeting,
            budget=self._normalize_budget(data.budget),
            placement=data.placement,
            delivery=data.delivery,
            created_at=now,
            updated_at=now
        )

        with self._lock:
            self._templates[template.id] = template

        logger.info(f"Template {template.id} created: {template.name}")
        return template

    def get(self, template_id: str) -> AdTemplate:
        """
        Get a template by ID.

        Raises:
            TemplateNotFoundError: If no template has this ID
        """
        with self._lock:
            template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    def update(self, template_id: str, data: TemplateUpdate) -> AdTemplate:
        """
        Apply a partial update to a template.

        Raises:
            TemplateNotFoundError: If no template has this ID
            TemplateValidationError: If the new budget amount is invalid
        """
        changes = {
            field: getattr(data, field)
            for field in data.model_fields_set
            if getattr(data, field) is not None
        }
        if "budget" in changes:
            changes["budget"] = self._normalize_budget(changes["budget"])
        changes["updated_at"] = utc_now()

        with self._lock:
            existing = self._templates.get(template_id)
            if existing is None:
                raise TemplateNotFoundError(template_id)
            updated = existing.model_copy(update=changes)
            self._templates[template_id] = updated

        logger.info(f"Template {template_id} updated: {updated.name}")
        return updated

    def delete(self, template_id: str) -> None:
        """
        Delete a template.

        Raises:
            TemplateNotFoundError: If no template has this ID
        """
        with self._lock:
            template = self._templates.pop(template_id, None)
        if template is None:
            raise TemplateNotFoundError(template_id)
        logger.info(f"Template {template_id} deleted: {template.name}")

    def list(self, page: int = 1, limit: int = 10, search: Optional[str] = None) -> TemplateList:
        """
        List templates with pagination and an optional search filter.

        Args:
            page: 1-based page number
            limit: Page size
            search: Case-insensitive substring matched against name and description

        Returns:
            TemplateList: The requested page and pagination metadata
        """
        page = max(page, 1)
        limit = max(limit, 1)

        with self._lock:
            templates = list(self._templates.values())

        if search:
            needle = search.lower()
            templates = [
                t for t in templates
                if needle in t.name.lower() or needle in t.description.lower()
            ]

        total = len(templates)
        start = (page - 1) * limit
        end = start + limit

        return TemplateList(
            templates=templates[start:end],
            pagination=PaginationInfo(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit),
                has_next=end < total,
                has_prev=page > 1
            )
        )

    def count(self) -> int:
        """Get the number of stored templates."""
        with self._lock:
            return len(self._templates)
