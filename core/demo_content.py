"""Static demo prompt catalog and demo/guest classification helpers.

The catalog is the single source of demo prompts shown to every visitor. Demo
prompts are system owned and read only; visitors who want to keep one duplicate
it into a new guest (or user) prompt.

A prompt is a demo prompt when ``is_demo`` is true *and* ``owner`` is
``"system"``. The identifier prefix is not consulted: a user prompt whose id
starts with ``demo-`` stays editable.

Updates:
  v0.3.0 - 2026-09-10 - Add edit/delete/save eligibility helpers for guest sessions.
  v0.2.0 - 2026-09-04 - Add catalog statistics and prompt badges.
  v0.1.0 - 2026-08-30 - Initial demo catalog with duplicate-to-user support.
"""

from __future__ import annotations

import textwrap
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from models.guest_work import GUEST_OWNER, SYSTEM_OWNER, Prompt
from models.timestamp import DocumentTimestamp

COPY_SUFFIX = " (My Copy)"


def _text(value: str) -> str:
    return textwrap.dedent(value).strip("\n")


_DEMO_CATALOG: tuple[dict[str, Any], ...] = (
    {
        "id": "demo-1",
        "title": "📝 Blog Post Generator",
        "text": _text(
            """
            Write a comprehensive blog post about [TOPIC].

            Requirements:
            - Engaging introduction with hook
            - 3-5 main points with supporting examples
            - Clear section headers
            - SEO-friendly with natural keyword integration
            - Compelling conclusion with call-to-action

            Tone: [Professional/Conversational/Technical]
            Length: [800/1200/1500] words
            """
        ),
        "tags": ["writing", "content", "marketing", "seo"],
        "category": "Content Creation",
        "created_at": datetime(2024, 1, 15, tzinfo=UTC),
        "stats": {"views": 1247, "copies": 89},
    },
    {
        "id": "demo-2",
        "title": "💻 Code Review Assistant",
        "text": _text(
            """
            Review the following code and provide:

            1. **Bug Identification**
               - Syntax errors
               - Logic flaws
               - Edge cases

            2. **Performance Optimization**
               - Time complexity analysis
               - Memory usage improvements
               - Best practices

            3. **Security Considerations**
               - Vulnerability assessment
               - Input validation
               - Data handling

            4. **Recommendations**
               - Refactoring suggestions
               - Design patterns
               - Documentation improvements

            Code:
            [PASTE CODE HERE]
            """
        ),
        "tags": ["development", "code-review", "programming", "debugging"],
        "category": "Development",
        "created_at": datetime(2024, 1, 14, tzinfo=UTC),
        "stats": {"views": 2341, "copies": 156},
    },
    {
        "id": "demo-3",
        "title": "📧 Email Marketing Template",
        "text": _text(
            """
            Create a professional email marketing campaign for [PRODUCT/SERVICE].

            Structure:
            - **Subject Line:** Attention-grabbing, 50 chars max
            - **Preview Text:** Complement subject, build curiosity
            - **Header:** Personalized greeting
            - **Body:**
              • Problem identification
              • Solution presentation
              • Social proof/testimonials
              • Value proposition
              • Urgency element
            - **CTA:** Clear, action-oriented button
            - **Footer:** Contact info, unsubscribe

            Tone: [Professional/Friendly/Urgent]
            Target: [B2B/B2C/SaaS]
            """
        ),
        "tags": ["marketing", "email", "sales", "copywriting"],
        "category": "Marketing",
        "created_at": datetime(2024, 1, 13, tzinfo=UTC),
        "stats": {"views": 1876, "copies": 203},
    },
    {
        "id": "demo-4",
        "title": "📊 Data Analysis Helper",
        "text": _text(
            """
            Analyze the following dataset and provide comprehensive insights:

            1. **Descriptive Statistics**
               - Mean, median, mode
               - Standard deviation
               - Distribution analysis

            2. **Trends & Patterns**
               - Temporal trends
               - Correlations
               - Outlier detection

            3. **Insights & Findings**
               - Key takeaways
               - Anomalies
               - Predictive indicators

            4. **Actionable Recommendations**
               - Data-driven decisions
               - Risk assessment
               - Opportunity identification

            5. **Visualization Suggestions**
               - Chart types
               - Dashboard layout
               - KPI tracking

            Data:
            [PASTE DATA/CSV HERE]
            """
        ),
        "tags": ["analytics", "data", "insights", "statistics"],
        "category": "Analytics",
        "created_at": datetime(2024, 1, 12, tzinfo=UTC),
        "stats": {"views": 987, "copies": 67},
    },
    {
        "id": "demo-5",
        "title": "🎯 Product Launch Strategy",
        "text": _text(
            """
            Develop a comprehensive product launch strategy for [PRODUCT NAME].

            **Pre-Launch Phase (4-6 weeks):**
            - Market research & competitive analysis
            - Target audience identification
            - Beta testing program
            - Influencer/partner outreach
            - Landing page creation
            - Email list building

            **Launch Phase (Week 1-2):**
            - Press release distribution
            - Social media campaign
            - Launch event/webinar
            - Special launch pricing
            - Early adopter incentives

            **Post-Launch Phase (Week 3-8):**
            - Customer feedback collection
            - Content marketing (case studies, tutorials)
            - Paid advertising campaigns
            - Partnership announcements
            - Community building

            **Success Metrics:**
            - Sign-ups/sales targets
            - Media mentions
            - Social engagement
            - Customer satisfaction scores

            Budget: $[AMOUNT]
            Timeline: [DURATION]
            """
        ),
        "tags": ["marketing", "strategy", "product-launch", "business"],
        "category": "Business",
        "created_at": datetime(2024, 1, 11, tzinfo=UTC),
        "stats": {"views": 1534, "copies": 124},
    },
    {
        "id": "demo-6",
        "title": "🔍 SEO Content Optimizer",
        "text": _text(
            """
            Optimize the following content for SEO:

            **Analysis Required:**
            1. Keyword Research
               - Primary keyword: [KEYWORD]
               - Secondary keywords (LSI)
               - Search intent analysis
               - Competitor gap analysis

            2. On-Page SEO
               - Title tag optimization (60 chars)
               - Meta description (155 chars)
               - Header structure (H1-H6)
               - Internal linking opportunities
               - Image alt text

            3. Content Quality
               - Readability score (Flesch-Kincaid)
               - Word count optimization
               - Content depth vs. competitors
               - Unique value proposition

            4. Technical SEO
               - URL structure
               - Schema markup suggestions
               - Mobile optimization
               - Page speed considerations

            Content:
            [PASTE CONTENT HERE]
            """
        ),
        "tags": ["seo", "content", "optimization", "marketing"],
        "category": "SEO",
        "created_at": datetime(2024, 1, 10, tzinfo=UTC),
        "stats": {"views": 2156, "copies": 178},
    },
    {
        "id": "demo-7",
        "title": "🎨 Creative Brainstorm Generator",
        "text": _text(
            """
            Generate creative ideas for [PROJECT/CAMPAIGN].

            **Brainstorming Framework:**

            1. **Problem Statement**
               - What challenge are we solving?
               - Target audience pain points
               - Desired outcome

            2. **Ideation Techniques**
               - Mind mapping
               - SCAMPER method (Substitute, Combine, Adapt, Modify, Put to other use, Eliminate, Reverse)
               - Random word association
               - Role-playing scenarios

            3. **Concept Development**
               - Generate 10-15 raw ideas
               - No self-censoring
               - Build on others' suggestions
               - Wild ideas encouraged

            4. **Evaluation Criteria**
               - Feasibility (1-10)
               - Impact (1-10)
               - Innovation (1-10)
               - Resource requirements

            5. **Top 3 Concepts**
               - Detailed description
               - Execution plan
               - Budget estimate
               - Timeline

            Project Context:
            [DESCRIBE PROJECT]
            """
        ),
        "tags": ["creativity", "brainstorming", "ideation", "innovation"],
        "category": "Creative",
        "created_at": datetime(2024, 1, 9, tzinfo=UTC),
        "stats": {"views": 876, "copies": 92},
    },
)


class PromptBadge(str, Enum):
    """Display hint attached to a prompt card."""

    DEMO = "demo"
    UNSAVED = "unsaved"
    ENHANCED = "enhanced"


@dataclass(frozen=True, slots=True)
class DemoStats:
    """Aggregate counters across the demo catalog."""

    total_prompts: int
    total_views: int
    total_copies: int


def _build_demo(entry: Mapping[str, Any], order: int) -> Prompt:
    return Prompt(
        id=entry["id"],
        title=entry["title"],
        text=entry["text"],
        tags=list(entry["tags"]),
        visibility="public",
        category=entry["category"],
        owner=SYSTEM_OWNER,
        created_by=SYSTEM_OWNER,
        is_demo=True,
        read_only=True,
        created_at=DocumentTimestamp.from_datetime(entry["created_at"]),
        stats=dict(entry["stats"]),
        order=order,
    )


def get_demo_prompts() -> list[Prompt]:
    """Return fresh copies of every catalog entry, in display order."""
    return [_build_demo(entry, index) for index, entry in enumerate(_DEMO_CATALOG, start=1)]


def get_demo_stats() -> DemoStats:
    prompts = get_demo_prompts()
    return DemoStats(
        total_prompts=len(prompts),
        total_views=sum((prompt.stats or {}).get("views", 0) for prompt in prompts),
        total_copies=sum((prompt.stats or {}).get("copies", 0) for prompt in prompts),
    )


def _field(prompt: Prompt | Mapping[str, Any], name: str) -> Any:
    if isinstance(prompt, Mapping):
        return prompt.get(name)
    return getattr(prompt, name, None)


def is_demo_prompt(prompt: Prompt | Mapping[str, Any] | None) -> bool:
    """Return ``True`` when *prompt* is a system-owned demo entry."""
    if prompt is None:
        return False
    return _field(prompt, "is_demo") is True and _field(prompt, "owner") == SYSTEM_OWNER


def duplicate_demo_to_user_prompt(
    demo: Prompt | Mapping[str, Any] | None,
    user_id: str | None = None,
) -> Prompt | None:
    """Return an editable, unsaved copy of *demo*, or ``None`` for non-demo input.

    The copy drops the identifier, statistics and ordering, is owned by *user_id*
    (or the guest marker when absent), and gets a fresh creation timestamp. The
    source prompt is not modified.
    """
    if demo is None or not is_demo_prompt(demo):
        return None
    source = demo if isinstance(demo, Prompt) else Prompt.from_record(demo)
    owner = user_id or GUEST_OWNER
    return Prompt(
        title=f"{source.title}{COPY_SUFFIX}",
        text=source.text,
        tags=list(source.tags),
        visibility=source.visibility,
        category=source.category,
        owner=owner,
        created_by=owner,
        is_demo=False,
        read_only=False,
        created_at=DocumentTimestamp.now(),
        extra=dict(source.extra),
    )


def get_prompt_badge(
    prompt: Prompt | Mapping[str, Any] | None,
    is_guest: bool,
) -> PromptBadge | None:
    """Return the badge for *prompt*; demo wins over unsaved, unsaved over enhanced."""
    if prompt is None:
        return None
    if is_demo_prompt(prompt):
        return PromptBadge.DEMO
    if is_guest and _field(prompt, "owner") == GUEST_OWNER:
        return PromptBadge.UNSAVED
    if _field(prompt, "enhanced") or _field(prompt, "enhanced_at"):
        return PromptBadge.ENHANCED
    return None


def can_save_prompt(prompt: Prompt | Mapping[str, Any], is_guest: bool) -> bool:
    """Demo prompts never save; guests must sign up before saving anything."""
    if is_demo_prompt(prompt):
        return False
    return not is_guest


def can_edit_prompt(prompt: Prompt | Mapping[str, Any], is_guest: bool) -> bool:
    # Demo edits only touch the session copy.
    if is_demo_prompt(prompt):
        return True
    if not is_guest:
        return True
    return _field(prompt, "owner") == GUEST_OWNER


def can_delete_prompt(prompt: Prompt | Mapping[str, Any], is_guest: bool) -> bool:
    if is_demo_prompt(prompt):
        return True
    if not is_guest:
        return True
    return _field(prompt, "owner") == GUEST_OWNER


__all__ = [
    "COPY_SUFFIX",
    "DemoStats",
    "PromptBadge",
    "can_delete_prompt",
    "can_edit_prompt",
    "can_save_prompt",
    "duplicate_demo_to_user_prompt",
    "get_demo_prompts",
    "get_demo_stats",
    "get_prompt_badge",
    "is_demo_prompt",
]
