"""Replies for the non-product (small talk) path."""

import random
from typing import Optional

from schemas.context import PatternCategory
from .patterns import PatternTable


class SmallTalkResponder:
    """Answers greetings, identity questions and thanks without retrieval."""

    GREETINGS = [
        "Oi! 👋 Como posso te ajudar hoje?",
        "Opa! Me diz o produto que você procura (ex.: iPhone, drone, perfume).",
        "Olá! Posso buscar ofertas de celulares, perfumes, eletrônicos e mais. O que você quer ver?",
    ]

    REPLIES = {
        "wellbeing": "Tudo ótimo por aqui! 😊 Qual produto você está procurando hoje?",
        "identity": (
            "Sou o assistente de compras do marketplace. Te ajudo a encontrar produtos "
            "nas lojas do Paraguai: pode pedir \"drones\", \"perfumes\", \"iPhone 15 128GB\"..."
        ),
        "thanks": "Por nada! Se quiser ver mais alguma coisa, é só falar. 😉",
    }

    INTRODUCTION = "Prazer, {name}! 😊 Qual produto você está procurando hoje?"

    HELP = (
        "Me diga o produto ou categoria (ex.: iPhone 15, Galaxy S24, drone com câmera). "
        "Posso filtrar por preço, marca e loja."
    )

    def __init__(self, patterns: Optional[PatternTable] = None, rng: Optional[random.Random] = None):
        self.patterns = patterns or PatternTable()
        self.rng = rng or random.Random()

    def reply(self, utterance: str, name: Optional[str] = None) -> str:
        """
        Pick a reply for a personal utterance.

        Args:
            utterance: Raw user utterance
            name: User's name, when known

        Returns:
            Reply text
        """
        rule = self.patterns.first_rule(utterance, PatternCategory.PERSONAL)
        if rule is None:
            return self.HELP

        if rule.name == "introduction" and name:
            return self.INTRODUCTION.format(name=name)

        if rule.name in self.REPLIES:
            return self.REPLIES[rule.name]

        greeting = self.rng.choice(self.GREETINGS)
        if name:
            greeting = greeting.replace("!", f", {name}!", 1)
        return greeting
