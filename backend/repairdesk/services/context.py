"""Explicit request context passed into every service entry point.

The HTTP layer builds one per request from JWT claims and app config; tests and
scripts construct them directly. Services never read ambient session state.
"""
from __future__ import annotations
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

from repairdesk.constants.permissions import Role


class StockMode(str, Enum):
    PERMISSIVE = 'permissive'  # decrements never checked; counters may go negative
    STRICT = 'strict'  # decrements below zero raise InsufficientStock


class TransitionPolicy(str, Enum):
    STRICT = 'strict'  # adjacent workflow steps and CANCELLED only
    OPEN = 'open'  # any status jump, terminal states still terminal


DEFAULT_TAX_RATE = Decimal('0.20')


@dataclass(frozen=True)
class ServiceSettings:
    stock_mode: StockMode = StockMode.PERMISSIVE
    transition_policy: TransitionPolicy = TransitionPolicy.STRICT
    default_tax_rate: Decimal = DEFAULT_TAX_RATE
    ticket_number_prefix: str = 'TKT'

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'ServiceSettings':
        return cls(
            stock_mode=StockMode(str(config.get('STOCK_MODE', StockMode.PERMISSIVE.value)).lower()),
            transition_policy=TransitionPolicy(str(config.get('TICKET_TRANSITION_POLICY', TransitionPolicy.STRICT.value)).lower()),
            default_tax_rate=Decimal(str(config.get('DEFAULT_TAX_RATE', DEFAULT_TAX_RATE))),
            ticket_number_prefix=config.get('TICKET_NUMBER_PREFIX', 'TKT'),
        )


@dataclass(frozen=True)
class RequestContext:
    user_id: int
    role: Role
    org_id: int
    store_id: Optional[int] = None
    settings: ServiceSettings = field(default_factory=ServiceSettings)

    def with_settings(self, **changes) -> 'RequestContext':
        return replace(self, settings=replace(self.settings, **changes))


__all__ = ['RequestContext', 'ServiceSettings', 'StockMode', 'TransitionPolicy', 'DEFAULT_TAX_RATE']
