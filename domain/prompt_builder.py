"""Prompt templates for the options and synopsis endpoints."""
from __future__ import annotations

import textwrap

from .models import SynopsisRequest

OPTIONS_PROMPT = textwrap.dedent(
    """
    あなたはクリエイティブなゲーム作家です。
    5カテゴリの候補を日本語のJSONのみで返してください（説明禁止）。
    {
      "heroes": ["..."],
      "stages": ["..."],
      "rules":  ["..."],
      "rivals": ["..."],
      "bosses": ["..."]
    }
    制約: 各5〜8件/重複なし/1件12〜20文字/ユーモア×ファンタジーのバランス
    """
).strip()

_SYNOPSIS_TEMPLATE = textwrap.dedent(
    """
    以下の設定から、日本語の「作品あらすじ」を1つ生成してください。
    - 主人公: {hero}
    - 舞台: {stage}
    - 世界観ルール: {rule}
    - ライバル: {rival}
    - ボス: {boss}

    要件:
    - 文字数はおおよそ{min_chars}〜{max_chars}文字
    - 起承転結を明確に
    - 固有名詞は2〜3個まで
    - 本文のみ（ヘッダーや注釈は不要）
    """
).strip()


def build_options_prompt() -> str:
    return OPTIONS_PROMPT


def build_synopsis_prompt(request: SynopsisRequest) -> str:
    return _SYNOPSIS_TEMPLATE.format(
        hero=request.hero,
        stage=request.stage,
        rule=request.rule,
        rival=request.rival,
        boss=request.boss,
        min_chars=request.min_chars,
        max_chars=request.max_chars,
    )
