"""System prompt construction grounded in a business snapshot."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from springcrm.core.snapshot import BusinessSnapshot


class PromptKind(str, Enum):
    GENERAL = "general"
    COMPANY_RESEARCH = "company-research"
    CUSTOMER_ANALYSIS = "customer-analysis"


_GENERAL_PROMPT = """\
You are the business assistant of {company}, a manufacturer and exporter of \
vehicle leaf springs. You answer questions from the sales team about their \
customers, orders, inquiries and products.

Guidelines:
- Ground every statement in the business data below. If the data does not \
contain the answer, say so plainly instead of guessing.
- Quote figures exactly as they appear in the data.
- Be concise. Prefer short paragraphs and bullet lists.
- Answer in the language the question was asked in.
"""

_COMPANY_RESEARCH_PROMPT = """\
You are a foreign-trade research analyst working for {company}, a manufacturer \
and exporter of vehicle leaf springs (heavy truck, light truck, bus, trailer \
and construction-vehicle series).

Research the following prospective customer:
{subject}

Use web search where it helps, then report on:
1. Company profile: location, size, ownership, years in business, main business.
2. Products: what they make, sell or service, and which of them use leaf springs.
3. Market fit: how well our leaf-spring range matches their needs, and likely volumes.
4. Outreach strategy: who to contact, what to offer first, and talking points for the first email.

Say clearly which facts come from search results and which are your own inference.
"""

_CUSTOMER_ANALYSIS_PROMPT = """\
You are a key-account analyst working for {company}, a manufacturer and \
exporter of vehicle leaf springs.

Customer record:
{customer}

Orders from this customer:
{orders}

Inquiries from this customer:
{inquiries}

Analyse this customer and cover:
1. Customer value: order history, volumes and importance to the business.
2. Purchasing pattern: products, frequency and any trend in recent activity.
3. Risks and open issues: unanswered inquiries, stalled orders, churn signals.
4. Recommended next actions for the sales team, in priority order.
"""


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, indent=2, default=str)


def _general(snapshot: BusinessSnapshot, company: str, sample_size: int) -> str:
    parts = [_GENERAL_PROMPT.format(company=company)]
    parts.append("Totals:")
    for name, count in snapshot.counts().items():
        parts.append(f"- {name}: {count}")

    parts.append("\nBreakdowns:")
    parts.append(_dump(snapshot.breakdowns()))

    samples = snapshot.samples(sample_size)
    parts.append(f"\nCustomers (first {sample_size}):")
    parts.append(_dump(samples["customers"]))
    parts.append(f"\nOrders (first {sample_size}):")
    parts.append(_dump(samples["orders"]))
    parts.append(f"\nInquiries (first {sample_size}):")
    parts.append(_dump(samples["inquiries"]))
    parts.append("\nProduct catalogue:")
    parts.append(_dump(list(snapshot.products)))
    return "\n".join(parts)


def _customer_analysis(snapshot: BusinessSnapshot, customer_id: str, company: str) -> str:
    customer = snapshot.find_customer(customer_id)
    if customer is None:
        raise KeyError(customer_id)
    return _CUSTOMER_ANALYSIS_PROMPT.format(
        company=company,
        customer=_dump(customer),
        orders=_dump(snapshot.orders_for(customer_id)),
        inquiries=_dump(snapshot.inquiries_for(customer_id)),
    )


def build_system_prompt(
    kind: PromptKind,
    snapshot: BusinessSnapshot,
    subject: str | None = None,
    company: str = "our company",
    sample_size: int = 10,
) -> str:
    """Build the system message for one assistant request.

    `subject` is the free-text company description for company research and
    the customer id for customer analysis. An unknown customer id raises
    `KeyError`.
    """
    if kind is PromptKind.GENERAL:
        return _general(snapshot, company, sample_size)

    if not subject:
        raise ValueError(f"{kind.value} prompts require a subject")

    if kind is PromptKind.COMPANY_RESEARCH:
        return _COMPANY_RESEARCH_PROMPT.format(company=company, subject=subject.strip())
    return _customer_analysis(snapshot, subject, company)
