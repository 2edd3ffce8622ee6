"""Declarative utterance pattern table used by the focus resolver."""

import re
from typing import Optional
from pydantic import BaseModel

from retrieval.text import normalize_text
from schemas.context import PatternCategory


class PatternRule(BaseModel):
    """One named regular expression inside a pattern category."""
    category: PatternCategory
    name: str
    pattern: str

    def matches(self, normalized: str) -> bool:
        return re.search(self.pattern, normalized) is not None


class CategorySpec(BaseModel):
    """Precedence and exclusions of one pattern category."""
    category: PatternCategory
    precedence: int
    excludes: list[PatternCategory] = []


# Lower precedence value wins; a matched category removes the ones it excludes.
CATEGORY_SPECS = [
    CategorySpec(
        category=PatternCategory.PERSONAL,
        precedence=1,
        excludes=[PatternCategory.DEICTIC, PatternCategory.PRODUCT_QUESTION],
    ),
    CategorySpec(category=PatternCategory.DEICTIC, precedence=2),
    CategorySpec(category=PatternCategory.PRODUCT_QUESTION, precedence=3),
]

# Patterns run against normalize_text() output: lower case, no accents,
# no punctuation, chat abbreviations expanded.
PATTERN_RULES = [
    # Personal / small talk
    PatternRule(
        category=PatternCategory.PERSONAL,
        name="greeting",
        pattern=r"^(oi+|ola|opa|eai|e ai|hey|hello|salve|bom dia|boa tarde|boa noite)\b",
    ),
    PatternRule(
        category=PatternCategory.PERSONAL,
        name="wellbeing",
        pattern=r"\b(tudo bem|tudo bom|tudo certo|como voce (esta|ta|vai)|como vai)\b",
    ),
    PatternRule(
        category=PatternCategory.PERSONAL,
        name="identity",
        pattern=r"\b(quem (e|eh|sao) voce|qual (e )?(o )?seu nome|voce e (um |uma )?(robo|bot|humano|ia|pessoa)|com quem (eu )?falo)\b",
    ),
    PatternRule(
        category=PatternCategory.PERSONAL,
        name="thanks",
        pattern=r"^(obrigad[oa]|valeu|vlw|brigad[oa])\b",
    ),
    PatternRule(
        category=PatternCategory.PERSONAL,
        name="introduction",
        pattern=r"\b(meu nome e|me chamo|pode me chamar de)\b",
    ),
    # Deictic references to something already shown
    PatternRule(
        category=PatternCategory.DEICTIC,
        name="demonstrative",
        pattern=r"\b(esse|essa|esses|essas|este|estes|aquele|aquela|aqueles|aquelas|isso|isto|aquilo)\b",
    ),
    PatternRule(
        category=PatternCategory.DEICTIC,
        name="ordinal",
        pattern=r"\b(o|a) (primeiro|primeira|segundo|segunda|terceiro|terceira|ultimo|ultima)\b",
    ),
    PatternRule(
        category=PatternCategory.DEICTIC,
        name="pronoun",
        pattern=r"\b(dele|dela|nele|nela|ele|ela)\b",
    ),
    # Evaluative questions about a product
    PatternRule(
        category=PatternCategory.PRODUCT_QUESTION,
        name="worth_it",
        pattern=r"\b(vale a pena|compensa|presta|vale o preco)\b",
    ),
    PatternRule(
        category=PatternCategory.PRODUCT_QUESTION,
        name="is_good",
        pattern=r"\b(e|eh) (bom|boa|confiavel|original)\b",
    ),
    PatternRule(
        category=PatternCategory.PRODUCT_QUESTION,
        name="price_of",
        pattern=r"\b(quanto (custa|sai|ta)|qual (e )?(o )?preco)\b",
    ),
    PatternRule(
        category=PatternCategory.PRODUCT_QUESTION,
        name="details",
        pattern=r"\b(tem garantia|tem (na )?cor|quais as (cores|especificacoes)|tem estoque)\b",
    ),
]


class PatternTable:
    """
    Classifies utterances into pattern categories with explicit precedence.

    The table is data: rules and category specs can be inspected or replaced
    without touching the resolver.
    """

    def __init__(
        self,
        rules: Optional[list[PatternRule]] = None,
        specs: Optional[list[CategorySpec]] = None
    ):
        self.rules = rules if rules is not None else PATTERN_RULES
        self.specs = sorted(
            specs if specs is not None else CATEGORY_SPECS,
            key=lambda s: s.precedence
        )

    def matching_rules(self, utterance: str) -> list[PatternRule]:
        """All rules that match, regardless of precedence."""
        normalized = normalize_text(utterance)
        return [rule for rule in self.rules if rule.matches(normalized)]

    def classify(self, utterance: str) -> list[PatternCategory]:
        """
        Matched categories in precedence order, after exclusions.

        Args:
            utterance: Raw user utterance

        Returns:
            List of categories (e.g. [PERSONAL] or [DEICTIC, PRODUCT_QUESTION])
        """
        hit = {rule.category for rule in self.matching_rules(utterance)}
        excluded = set()
        result = []
        for spec in self.specs:
            if spec.category in hit and spec.category not in excluded:
                result.append(spec.category)
                excluded.update(spec.excludes)
        return result

    def first_rule(self, utterance: str, category: PatternCategory) -> Optional[PatternRule]:
        """First matching rule of a category, used to pick small-talk replies."""
        for rule in self.matching_rules(utterance):
            if rule.category == category:
                return rule
        return None
