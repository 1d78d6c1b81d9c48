"""LLM 통합 모듈: 추천 설명 생성 및 OpenAI 기반 코칭 문구 생성"""
from __future__ import annotations

import logging
import os
from typing import Any, List, Optional, TYPE_CHECKING

from .scheduling import format_time_slot

if TYPE_CHECKING:
    from .recommendation import RankedTask

logger = logging.getLogger(__name__)

# 영어 설명용 이유 라벨 매핑
EN_REASON_LABELS = {
    "profile": "matches your profile",
    "preference": "fits your preferences",
    "time": "is scheduled close to now",
    "progress": "builds on your recent progress",
    "weather": "suits today's weather",
    "variety": "adds variety to your routine",
}

# 이유로 선택되는 최소 요인 점수
REASON_THRESHOLD = 0.6

# 기본 영어 설명
DEFAULT_EN_REASON = "a balanced choice for today"

# 영어 설명 템플릿
EN_EXPLANATION_TEMPLATE = "I suggest {title} ({minutes} min). Reason: {reasons}."

# OpenAI API를 사용한 코칭 문구 생성용 프롬프트
OPENAI_PROMPT = """You are a friendly wellness coach inside a mobile app.
Rewrite the recommendation below as one or two short, encouraging sentences addressed to the user.
Do not invent new facts, numbers or medical advice.

Task: {title} ({category}, {minutes} min, {intensity} intensity, at {time})
Explanation: {explanation}
Supporting factors: {supporting}
Risks: {risks}

Message:"""


class ExplanationGenerator:
    """
    추천 설명 생성기 클래스 (템플릿 기반)

    요인 점수와 예측 결과를 바탕으로 사용자 친화적인 추천 설명을 생성합니다.
    """

    def build_message(self, ranked: RankedTask) -> str:
        """
        순위가 매겨진 추천 결과에 대한 설명 메시지 생성

        Args:
            ranked: 순위가 매겨진 추천 결과

        Returns:
            사용자 친화적인 추천 설명 문자열
        """
        task = ranked.task
        scores = ranked.reasoning_tokens
        picked: List[str] = []

        # 유의미한 점수(0.6 초과)를 가진 요인들 선별
        for key in EN_REASON_LABELS:
            if scores.get(key, 0.0) > REASON_THRESHOLD:
                picked.append(EN_REASON_LABELS[key])

        # 선별된 요인이 없으면 기본 이유 사용
        if not picked:
            picked.append(DEFAULT_EN_REASON)

        message = EN_EXPLANATION_TEMPLATE.format(
            title=task.title,
            minutes=task.duration,
            reasons="; ".join(picked),
        )

        prediction = ranked.prediction
        if prediction.supporting_factors:
            message += f" {prediction.supporting_factors[0]}."
        if prediction.risks:
            message += f" Watch out: {prediction.risks[0]}."
        return message


class OpenAICoachNarrator:
    """
    OpenAI API를 사용한 코칭 문구 생성기

    템플릿 설명을 짧은 코칭 문장으로 바꿔 쓰기만 하며 점수에는 관여하지 않습니다.
    API 호출이 실패하면 템플릿 설명을 그대로 반환합니다.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-3.5-turbo",
        temperature: float = 0.3,
        max_tokens: int = 120,
        client: Any = None,
        explanation_generator: Optional[ExplanationGenerator] = None,
    ) -> None:
        """
        OpenAI Coach Narrator 초기화

        Args:
            api_key: OpenAI API 키 (None이면 환경변수 OPENAI_API_KEY 사용)
            model: 사용할 OpenAI 모델
            temperature: 생성 온도
            max_tokens: 최대 토큰 수
            client: 미리 만든 클라이언트 (주어지면 API 키 확인을 건너뜀)
            explanation_generator: 기본 설명 생성기
        """
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.explanations = explanation_generator or ExplanationGenerator()

        if client is not None:
            self.api_key = api_key
            self.client = client
            return

        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError(
                "OpenAI API key is required. Set OPENAI_API_KEY environment variable or pass api_key parameter."
            )

        # OpenAI 클라이언트 초기화
        try:
            from openai import OpenAI
            self.client = OpenAI(api_key=self.api_key)
        except ImportError as exc:
            raise RuntimeError(
                "openai package is required. Install it with `pip install openai`."
            ) from exc

    def narrate(self, ranked: RankedTask) -> str:
        """
        추천 결과를 코칭 문구로 변환

        Args:
            ranked: 순위가 매겨진 추천 결과

        Returns:
            코칭 문구 (실패 시 템플릿 설명)
        """
        fallback = self.explanations.build_message(ranked)
        prompt = self._build_prompt(ranked, fallback)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You are a concise, supportive wellness coach."},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )

            raw_text = (response.choices[0].message.content or "").strip()
            logger.info(f"OpenAI response: {raw_text}")
            return raw_text or fallback

        except Exception as exc:
            logger.error(f"OpenAI API call failed: {exc}")
            return fallback

    @staticmethod
    def _build_prompt(ranked: RankedTask, explanation: str) -> str:
        """프롬프트 구성"""
        task = ranked.task
        prediction = ranked.prediction
        return OPENAI_PROMPT.format(
            title=task.title,
            category=task.category,
            minutes=task.duration,
            intensity=task.intensity,
            time=format_time_slot(task.time_slot),
            explanation=explanation,
            supporting=", ".join(prediction.supporting_factors) or "none",
            risks=", ".join(prediction.risks) or "none",
        )
