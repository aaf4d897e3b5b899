"""
AdAnalysisService - Marketing analysis of stored ads.

Analysis is a pluggable capability: an AnalysisProvider turns one
NormalizedAd into an AnalysisResult. Two providers ship here:

- HeuristicAnalysisProvider: deterministic, no network; describes the ad
  from its own fields
- GeminiAnalysisProvider: asks Google Gemini for the written analysis

Key elements (urgency, benefits, CTA, ...) are always computed locally so
they are comparable across providers.

Usage:
    service = AdAnalysisService(AdStore(client), GeminiAnalysisProvider())
    result = service.analyze_ad(row_id)
    print(result.target_audience)
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from google import genai
from google.genai import types
from pydantic import ValidationError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from ..core.config import Config
from ..core.exceptions import AnalysisError
from ..core.observability import get_logfire
from .ad_store import AdStore
from .models import AnalysisResult, CopyVariation, KeyElements, NormalizedAd, Platform, Verified

logger = logging.getLogger(__name__)


URGENCY_TERMS = ("now", "today", "limited", "hurry", "last chance", "ends", "don't miss", "only")
BENEFIT_TERMS = ("free", "save", "benefit", "improve", "better", "results", "guarantee", "easy")
EMOTIONAL_TERMS = ("love", "amazing", "feel", "happy", "dream", "incredible", "transform", "proud")
CONVERSATIONAL_TERMS = ("you", "your", "you're", "we", "our")

BROAD_AUDIENCE_PAGE_LIKES = 500_000


def _mentions(text: str, terms) -> bool:
    return any(re.search(rf"(?<!\w){re.escape(term)}(?!\w)", text) for term in terms)


def compute_key_elements(ad: NormalizedAd) -> KeyElements:
    """Observable creative elements of an ad."""
    copy = f"{ad.title} {ad.ad_copy}".lower()
    return KeyElements(
        has_video=ad.is_video,
        has_image=not ad.is_video or bool(ad.thumbnail),
        has_cta=bool(ad.cta_text),
        cta_text=ad.cta_text,
        copy_length=len(ad.ad_copy),
        uses_urgency=_mentions(copy, URGENCY_TERMS),
        highlights_benefits=_mentions(copy, BENEFIT_TERMS),
        emotional_appeal=_mentions(copy, EMOTIONAL_TERMS) or "!" in copy,
        conversational=_mentions(copy, CONVERSATIONAL_TERMS) or "?" in copy,
        advertiser=ad.advertiser_name,
        platform=ad.platform.value,
    )


class AnalysisProvider(ABC):
    """Base class for ad analysis providers.

    Each provider implements one method: analyze(ad) -> AnalysisResult.
    """
    name: str

    @abstractmethod
    def analyze(self, ad: NormalizedAd) -> AnalysisResult:
        ...


class HeuristicAnalysisProvider(AnalysisProvider):
    """Deterministic analysis built from the ad's own fields."""
    name = "heuristic"

    def analyze(self, ad: NormalizedAd) -> AnalysisResult:
        elements = compute_key_elements(ad)
        first_tag = ad.hashtags.split(",")[0].strip().lstrip("#") if ad.hashtags else ""

        pacing = "dynamic, motion-led" if elements.has_video else "static, single-frame"
        visual = (
            f"{ad.ad_format.title()} {ad.type.value} creative from {ad.advertiser_name} "
            f"with a {pacing} layout, live for {ad.active_hours} hours across "
            f"{ad.variants} variant(s)."
        )

        traits = [
            label for label, present in (
                ("urgency", elements.uses_urgency),
                ("benefit-led claims", elements.highlights_benefits),
                ("emotional language", elements.emotional_appeal),
                ("direct address", elements.conversational),
            ) if present
        ]
        copy_analysis = (
            f"{elements.copy_length}-character copy using "
            f"{', '.join(traits) if traits else 'plain descriptive language'}, "
            f"closing on \"{ad.cta_text}\"."
        )

        tone = "authoritative and trustworthy" if ad.verified == Verified.YES else "friendly and relatable"
        reach = "a broad mainstream audience" if ad.page_likes > BROAD_AUDIENCE_PAGE_LIKES else "a niche, engaged community"
        skew = "skewing younger" if ad.platform == Platform.TIKTOK else "across age groups"

        return AnalysisResult(
            visual_analysis=visual,
            copy_analysis=copy_analysis,
            tone_and_style=f"The tone is {tone}.",
            target_audience=f"Targets {reach} interested in {first_tag or 'the advertised products'}, {skew}.",
            image_generation_prompt=(
                f"{ad.type.value.capitalize()} ad for {ad.advertiser_name}: "
                f"{ad.title or 'hero product shot'}, clean commercial styling, clear '{ad.cta_text}' button."
            ),
            copy_variations=[
                CopyVariation(
                    headline=ad.title or f"Discover {ad.advertiser_name}",
                    body=ad.ad_copy[:200],
                    cta=ad.cta_text,
                    style="original",
                ),
            ],
            key_elements=elements,
            provider=self.name,
        )


def _is_rate_limit_error(error: BaseException) -> bool:
    text = str(error).lower()
    return "429" in text or "quota" in text or "rate limit" in text or "resource_exhausted" in text


def _strip_code_fences(text: str) -> str:
    json_text = text.strip()
    if json_text.startswith("```json"):
        json_text = json_text[7:]
    if json_text.startswith("```"):
        json_text = json_text[3:]
    if json_text.endswith("```"):
        json_text = json_text[:-3]
    return json_text.strip()


class GeminiAnalysisProvider(AnalysisProvider):
    """Analysis written by Google Gemini."""
    name = "gemini"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client: Optional[Any] = None):
        """
        Initialize Gemini provider.

        Args:
            api_key: Gemini API key (if None, uses Config.GEMINI_API_KEY)
            model: Gemini model (if None, uses Config.GEMINI_MODEL)
            client: Pre-built genai.Client (mainly for tests)

        Raises:
            ValueError: If no API key is available and no client is given
        """
        self.model_name = model or Config.GEMINI_MODEL

        if client is not None:
            self.client = client
        else:
            api_key = api_key or Config.GEMINI_API_KEY
            if not api_key:
                raise ValueError("GEMINI_API_KEY not found in environment")
            self.client = genai.Client(api_key=api_key)

        logger.info(f"GeminiAnalysisProvider initialized with model: {self.model_name}")

    def analyze(self, ad: NormalizedAd) -> AnalysisResult:
        elements = compute_key_elements(ad)
        response_text = self._generate(self._build_prompt(ad))
        data = self._parse_response(response_text)

        variations = []
        raw_variations = data.get("copy_variations")
        for v in raw_variations if isinstance(raw_variations, list) else []:
            if not isinstance(v, dict) or not {"headline", "body", "cta"} <= v.keys():
                continue
            try:
                variations.append(CopyVariation(**v))
            except ValidationError as e:
                logger.warning(f"Skipping invalid copy variation: {e.error_count()} error(s)")

        return AnalysisResult(
            visual_analysis=str(data.get("visual_analysis", "")),
            copy_analysis=str(data.get("copy_analysis", "")),
            tone_and_style=str(data.get("tone_and_style", "")),
            target_audience=str(data.get("target_audience", "")),
            image_generation_prompt=str(data.get("image_generation_prompt", "")),
            copy_variations=variations,
            key_elements=elements,
            provider=self.name,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=15, min=15, max=60),
        retry=retry_if_exception(_is_rate_limit_error),
        reraise=True,
    )
    def _generate(self, prompt: str) -> str:
        logger.debug(f"Requesting Gemini analysis ({len(prompt)} chars)")
        response = self.client.models.generate_content(
            model=self.model_name,
            contents=[prompt],
            config=types.GenerateContentConfig(
                temperature=0.7,
                response_mime_type="application/json",
            ),
        )
        return response.text or ""

    def _build_prompt(self, ad: NormalizedAd) -> str:
        return f"""You are an expert marketing analyst. Analyze this {ad.platform.value} ad.

AD DETAILS:
- Advertiser: {ad.advertiser_name}
- Type: {ad.type.value}
- Format: {ad.ad_format}
- Title: {ad.title or 'N/A'}
- Ad Copy: {ad.ad_copy or 'N/A'}
- CTA: {ad.cta_text}
- Active Hours: {ad.active_hours}
- Variants: {ad.variants}
- Performance Score: {ad.performance_score}/100
- Page Likes: {ad.page_likes}
- Hashtags: {ad.hashtags or 'N/A'}

Return ONLY a JSON object with these keys:
{{
  "visual_analysis": "<what the creative shows and why it stops the scroll>",
  "copy_analysis": "<how the copy persuades>",
  "tone_and_style": "<tone and style>",
  "target_audience": "<who this ad targets>",
  "image_generation_prompt": "<prompt to recreate a similar creative>",
  "copy_variations": [{{"headline": "", "body": "", "cta": "", "style": ""}}]
}}"""

    def _parse_response(self, response_text: str) -> Dict[str, Any]:
        try:
            data = json.loads(_strip_code_fences(response_text))
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON response: {e}")
            logger.error(f"Response text: {response_text[:500]}")
            raise AnalysisError(f"Gemini returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise AnalysisError(f"Gemini returned {type(data).__name__}, expected an object")
        return data


class AdAnalysisService:
    """Analyze stored ads and write the analysis back to their rows."""

    def __init__(self, ad_store: AdStore, provider: Optional[AnalysisProvider] = None):
        """
        Initialize AdAnalysisService.

        Args:
            ad_store: Store holding the ads to analyze
            provider: Analysis provider (defaults to HeuristicAnalysisProvider)
        """
        self.ad_store = ad_store
        self.provider = provider or HeuristicAnalysisProvider()

    def analyze_ad(self, row_id: str) -> AnalysisResult:
        """
        Analyze one stored ad.

        Args:
            row_id: scraped_ads row ID

        Returns:
            AnalysisResult (also saved onto the row)

        Raises:
            AdNotFoundError: If the row does not exist
            AnalysisError: If the provider output is unusable
        """
        row = self.ad_store.get_ad(row_id)
        ad = NormalizedAd.from_row(row)

        with get_logfire().span("analyze_ad", row_id=row_id, provider=self.provider.name):
            result = self.provider.analyze(ad)

        self.ad_store.save_analysis(row_id, result)
        return result
