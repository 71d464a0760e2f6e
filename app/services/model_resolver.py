"""
Model/Endpoint Resolver

Orders (API version, model name) candidates for the fallback executor:
explicit configuration, then general preference, then the fast tier, then
everything else the probe reported, then a blind static retry block.
"""
import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from app.config import settings
from app.models import CandidatePair

logger = logging.getLogger(__name__)

ListModels = Callable[[str], Awaitable[List[str]]]


@dataclass(frozen=True)
class ResolverConfig:
    preferred_models: Tuple[str, ...]
    api_versions: Tuple[str, ...]
    fast_tier_pattern: str = "flash"
    denied_pattern: str = r"gemini-1\.5-flash"

    @classmethod
    def from_settings(cls, source=settings) -> "ResolverConfig":
        return cls(
            preferred_models=tuple(source.preferred_models),
            api_versions=tuple(source.GEMINI_API_VERSIONS),
            fast_tier_pattern=source.FAST_TIER_PATTERN,
            denied_pattern=source.DENIED_MODEL_PATTERN,
        )


class ModelResolver:
    """Pure function of (config, probe results), plus an async probing wrapper"""

    def __init__(self, config: Optional[ResolverConfig] = None):
        self.config = config or ResolverConfig.from_settings()
        self._fast_tier = re.compile(self.config.fast_tier_pattern, re.IGNORECASE)
        self._denied = re.compile(self.config.denied_pattern, re.IGNORECASE) if self.config.denied_pattern else None

    def order_available(self, available: Sequence[str]) -> List[str]:
        """Partition one version's models: preferred, fast tier, rest"""
        preferred = [name for name in self.config.preferred_models if name in available]
        fast_tier = [
            name for name in available
            if name not in preferred and self._fast_tier.search(name)
        ]
        rest = [name for name in available if name not in preferred and name not in fast_tier]
        return preferred + fast_tier + rest

    def order_candidates(self, availability: Dict[str, Sequence[str]]) -> List[CandidatePair]:
        """
        Build the final candidate list from probe results.

        Args:
            availability: Models reported per API version (missing or empty = unknown)

        Returns:
            De-duplicated candidates, most preferred first
        """
        dynamic = [
            CandidatePair(api_version, name)
            for api_version in self.config.api_versions
            for name in self.order_available(list(availability.get(api_version) or []))
        ]
        static = [
            CandidatePair(api_version, name)
            for api_version in self.config.api_versions
            for name in self.config.preferred_models
        ]

        seen = set()
        candidates = []
        for pair in dynamic + static:
            if self._denied and self._denied.search(pair.model_name):
                continue
            if pair in seen:
                continue
            seen.add(pair)
            candidates.append(pair)
        return candidates

    async def resolve(self, list_models: ListModels) -> List[CandidatePair]:
        """
        Probe each API version and order the candidates.

        The probe is best-effort: a failing probe counts as empty availability.
        """
        results = await asyncio.gather(
            *(list_models(api_version) for api_version in self.config.api_versions),
            return_exceptions=True
        )

        availability: Dict[str, List[str]] = {}
        for api_version, result in zip(self.config.api_versions, results):
            if isinstance(result, Exception):
                logger.warning(f"Model probe for {api_version} failed: {result}")
                availability[api_version] = []
            else:
                availability[api_version] = list(result or [])
            logger.info(f"Model probe {api_version}: {len(availability[api_version])} models available")

        candidates = self.order_candidates(availability)
        logger.info(f"Resolved {len(candidates)} model candidates: {[c.label for c in candidates[:5]]}...")
        return candidates
