# menuscan/menu_pipeline.py
"""
Menu Structuring Pipeline — raw text blocks → ProcessedMenuData.

Modes:
  "heuristic"     lines of all blocks (in order) → section assembler →
                  confidence scorer (+ document-wide allergen alerts)
  "collaborator"  each block → MenuTextStructurer, concurrently; results are
                  re-ordered by block index before concatenation; no local
                  allergen alert pass

Public API:
- MenuStructuringPipeline(mode=..., structurer=..., detect_alerts=...).process(blocks, text_quality=None)
- MenuStructuringPipeline.process_text(raw_text, text_quality)
- structure_menu_text(raw_text, text_quality) -> ProcessedMenuData

process() never raises for malformed text: failures degrade to fewer sections
and lower confidence. Passing None (or a non-sequence) is the one hard error.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Sequence, Tuple, Union

from menuscan.allergen_matcher import AllergenMatcher, default_matcher
from menuscan.errors import CollaboratorError
from menuscan.ai_menu_extract import MenuTextStructurer
from menuscan.menu_types import MenuSection, ProcessedMenuData, RawTextBlock
from menuscan.parsers.section_assembler import assemble_sections
from menuscan.scoring.confidence import clamp01, score_confidence

log = logging.getLogger(__name__)

MODE_HEURISTIC = "heuristic"
MODE_COLLABORATOR = "collaborator"
MODES = (MODE_HEURISTIC, MODE_COLLABORATOR)

BlockLike = Union[RawTextBlock, str]


def _normalize_blocks(text_blocks: Sequence[BlockLike]) -> List[RawTextBlock]:
    if text_blocks is None or isinstance(text_blocks, (str, bytes)):
        raise TypeError("text_blocks must be a sequence of RawTextBlock")
    blocks: List[RawTextBlock] = []
    for b in text_blocks:
        if isinstance(b, RawTextBlock):
            blocks.append(b)
        elif isinstance(b, str):
            blocks.append(RawTextBlock(text=b, confidence=1.0))
        else:
            log.warning("Ignoring non-text block of type %s", type(b).__name__)
    return blocks


def _mean_block_confidence(blocks: Sequence[RawTextBlock]) -> float:
    if not blocks:
        return 0.0
    return sum(clamp01(b.confidence) for b in blocks) / len(blocks)


class MenuStructuringPipeline:
    def __init__(
        self,
        mode: str = MODE_HEURISTIC,
        *,
        structurer: Optional[MenuTextStructurer] = None,
        matcher: Optional[AllergenMatcher] = None,
        detect_alerts: bool = True,
        max_workers: int = 4,
    ):
        if mode not in MODES:
            raise ValueError(f"Unknown pipeline mode: {mode!r} (expected one of {MODES})")
        if mode == MODE_COLLABORATOR and structurer is None:
            raise ValueError("collaborator mode requires a structurer")
        self.mode = mode
        self.structurer = structurer
        self.matcher = matcher or default_matcher()
        self.detect_alerts = detect_alerts
        self.max_workers = max(1, max_workers)

    # ── public ───────────────────────────────────

    def process(
        self,
        text_blocks: Sequence[BlockLike],
        text_quality: Optional[float] = None,
    ) -> ProcessedMenuData:
        blocks = _normalize_blocks(text_blocks)
        quality = _mean_block_confidence(blocks) if text_quality is None else text_quality

        if self.mode == MODE_COLLABORATOR:
            sections = self._structure_via_collaborator(blocks)
            return ProcessedMenuData(
                sections=tuple(sections),
                confidence=score_confidence(sections, quality),
                mode=self.mode,
            )

        full_text = "\n".join(b.text for b in blocks if b.text)
        sections = assemble_sections(full_text.split("\n"), self.matcher)
        alerts = self.matcher.scan_document(full_text, sections) if self.detect_alerts else []
        log.info(
            "Structured %d sections / %d items from %d block(s)",
            len(sections), sum(len(s.items) for s in sections), len(blocks),
        )
        return ProcessedMenuData(
            sections=tuple(sections),
            confidence=score_confidence(sections, quality),
            allergen_alerts=tuple(alerts),
            mode=self.mode,
        )

    def process_text(self, raw_text: str, text_quality: float) -> ProcessedMenuData:
        return self.process([RawTextBlock(text=raw_text or "", confidence=text_quality)], text_quality)

    # ── collaborator mode ────────────────────────

    def _structure_block(self, idx: int, block: RawTextBlock) -> Tuple[int, List[MenuSection]]:
        try:
            found = self.structurer.structure(block.text)
        except CollaboratorError as e:
            log.warning("Structuring block %d failed: %s", idx, e)
            return idx, []
        return idx, [s for s in (found or []) if s.items]

    def _structure_via_collaborator(self, blocks: Sequence[RawTextBlock]) -> List[MenuSection]:
        if not blocks:
            return []
        results: Dict[int, List[MenuSection]] = {}
        workers = min(self.max_workers, len(blocks))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self._structure_block, i, b) for i, b in enumerate(blocks)]
            for fut in as_completed(futures):
                try:
                    idx, sections = fut.result()
                except Exception as e:
                    # unexpected collaborator bug: drop the block, keep the rest
                    log.exception("Unexpected structuring failure: %s", e)
                    continue
                results[idx] = sections
        return [s for idx in sorted(results) for s in results[idx]]


_default_pipeline: Optional[MenuStructuringPipeline] = None


def structure_menu_text(raw_text: str, text_quality: float) -> ProcessedMenuData:
    """Heuristic pipeline over one raw text string."""
    global _default_pipeline
    if _default_pipeline is None:
        _default_pipeline = MenuStructuringPipeline()
    return _default_pipeline.process_text(raw_text, text_quality)
