"""
Mbox 提取器模块 (Mbox Extractor Module)
======================================

用于从 mbox 归档中提取结构化邮件记录（MessageRecord）。

该文件定位为“轻量编排器”：切分、邮件头解析、解码、日期归一化与自邮件判定
被拆分到 `mbox_extract.extractors.mbox` 子包内的专用类中；本模块负责串联流程、
统计计数并输出记录。

职责划分（按模块）：
- `MessageSplitter`：按 ``From `` 行切分归档
- `HeaderParser`：定位邮件头区域（含回退状态机）、解析折叠邮件头
- `HeaderWordDecoder`：RFC 2047 编码字解码
- `BodyDecoder`：quoted-printable 正文还原
- `DateNormalizer`：Date 头解析与排序/过滤
- `SelfEmailClassifier`：忽略发件人与自邮件判定
"""

from __future__ import annotations

from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Deque, Iterable, Iterator, List, Optional, Tuple, Union

from mbox_extract.config import Settings, get_settings
from mbox_extract.extractors.mbox.body_decoder import BodyDecoder
from mbox_extract.extractors.mbox.config import (
    DATE_KEYS,
    DEFAULT_PROGRESS_EVERY,
    FROM_KEYS,
    MBOX_DELIMITER,
    MESSAGE_ID_KEYS,
    PARALLEL_WINDOW_PER_WORKER,
    SUBJECT_KEYS,
    TO_KEYS,
)
from mbox_extract.extractors.mbox.date_parser import DateNormalizer
from mbox_extract.extractors.mbox.header_parser import HeaderParser
from mbox_extract.extractors.mbox.self_email_classifier import SelfEmailClassifier
from mbox_extract.extractors.mbox.splitter import MessageSplitter
from mbox_extract.ir import (
    NO_RECIPIENT,
    NO_SENDER,
    NO_SUBJECT,
    AssemblyResult,
    DropReason,
    IdentityConfig,
    MessageBlock,
    MessageRecord,
    RunStats,
)
from mbox_extract.logger import get_logger, set_level
from mbox_extract.profile_loader import identity_from_settings

logger = get_logger(__name__)

TraceHook = Callable[[MessageRecord], None]


def strip_delimiter(text: str) -> str:
    """Drop the leading ``From `` line of a block, if present."""
    if not text.startswith(MBOX_DELIMITER):
        return text
    newline = text.find("\n")
    return "" if newline == -1 else text[newline + 1:]


# =========================================================================
# 单块组装
# =========================================================================

class MessageAssembler:
    """
    将消息块组装为 `MessageRecord`，并维护运行计数。

    - `assemble()`：处理单个块，返回 `AssemblyResult`（记录或丢弃原因），从不抛出异常。
    - `run()`：惰性、保序地处理块序列；`workers > 1` 时在线程池中并行组装，
      计数只在消费结果的线程中更新。
    """

    def __init__(
        self,
        identity: IdentityConfig,
        *,
        workers: int = 1,
        progress_every: int = DEFAULT_PROGRESS_EVERY,
        trace_every: int = 0,
        trace_hook: Optional[TraceHook] = None,
    ) -> None:
        self.classifier = SelfEmailClassifier(identity)
        self.workers = max(1, workers)
        self.progress_every = max(1, progress_every)
        self.trace_every = max(0, trace_every)
        self.trace_hook = trace_hook
        self.stats = RunStats()

    # ------------------------------------------------------------------
    # 单块
    # ------------------------------------------------------------------

    def assemble(self, block: MessageBlock) -> AssemblyResult:
        """处理单个消息块；意外异常记为 `DropReason.PARSE_ERROR`，不影响其余块。"""
        try:
            return self._assemble(block)
        except Exception as e:
            logger.error("Block %d: unexpected error while assembling: %s", block.index, e, exc_info=True)
            return AssemblyResult(block_index=block.index, reason=DropReason.PARSE_ERROR)

    def _assemble(self, block: MessageBlock) -> AssemblyResult:
        content = strip_delimiter(block.text)

        parsed = HeaderParser.parse(content)
        if parsed is None:
            logger.debug("Block %d: no header section found (start=%r)", block.index, content[:200])
            return AssemblyResult(block_index=block.index, reason=DropReason.HEADER_BOUNDARY)
        headers, raw_body = parsed

        subject = headers.first(*SUBJECT_KEYS) or NO_SUBJECT
        sender = headers.first(*FROM_KEYS) or NO_SENDER
        to = headers.first(*TO_KEYS) or NO_RECIPIENT
        date = headers.first(*DATE_KEYS)
        message_id = headers.first(*MESSAGE_ID_KEYS)

        if sender == NO_SENDER or to == NO_RECIPIENT:
            logger.debug("Block %d: missing required field (from=%r to=%r)", block.index, sender, to)
            return AssemblyResult(block_index=block.index, reason=DropReason.MISSING_REQUIRED)

        body = BodyDecoder.decode(raw_body)
        parsed_date = DateNormalizer.parse(date)
        if date and parsed_date is None:
            logger.debug("Block %d: unparseable date %r", block.index, date)

        if self.classifier.is_excluded(sender, to):
            return AssemblyResult(block_index=block.index, reason=DropReason.SELF_EMAIL)

        record = MessageRecord(
            index=block.index,
            subject=subject,
            sender=sender,
            to=to,
            date=date,
            parsed_date=parsed_date,
            message_id=message_id,
            body=body,
            headers=headers.to_dict(),
        )
        return AssemblyResult(block_index=block.index, record=record)

    # ------------------------------------------------------------------
    # 块序列
    # ------------------------------------------------------------------

    def _iter_parallel(self, blocks: Iterable[MessageBlock], workers: int) -> Iterator[AssemblyResult]:
        # Bounded look-ahead; futures are drained in submission (= split) order.
        window = workers * PARALLEL_WINDOW_PER_WORKER
        pending: Deque[Future] = deque()
        with ThreadPoolExecutor(max_workers=workers) as pool:
            for block in blocks:
                pending.append(pool.submit(self.assemble, block))
                if len(pending) >= window:
                    yield pending.popleft().result()
            while pending:
                yield pending.popleft().result()

    def iter_results(self, blocks: Iterable[MessageBlock], workers: Optional[int] = None) -> Iterator[AssemblyResult]:
        """逐块产出 `AssemblyResult`（含丢弃原因），顺序与切分顺序一致，并更新计数。"""
        workers = self.workers if workers is None else max(1, workers)
        self.stats = RunStats()

        if workers > 1:
            results = self._iter_parallel(blocks, workers)
        else:
            results = (self.assemble(block) for block in blocks)

        for result in results:
            self.stats.record(result)
            if self.stats.total % self.progress_every == 0:
                logger.info(
                    "Processed %d blocks, kept %d records (self=%d unparseable=%d)",
                    self.stats.total,
                    self.stats.emitted,
                    self.stats.self_excluded,
                    self.stats.dropped_unparseable,
                )
            if result.record is not None:
                self._trace(result.record)
            yield result

    def run(self, blocks: Iterable[MessageBlock], workers: Optional[int] = None) -> Iterator[MessageRecord]:
        """惰性产出保留的 `MessageRecord`，顺序与归档顺序一致。"""
        for result in self.iter_results(blocks, workers):
            if result.record is not None:
                yield result.record

    def _trace(self, record: MessageRecord) -> None:
        if not self.trace_every or self.stats.emitted % self.trace_every:
            return
        logger.debug(
            "Trace record #%d (block %d): subject=%r from=%r to=%r date=%r message_id=%r body_len=%d",
            self.stats.emitted,
            record.index,
            record.subject,
            record.sender,
            record.to,
            record.date,
            record.message_id,
            len(record.body),
        )
        if self.trace_hook is not None:
            self.trace_hook(record)


# =========================================================================
# 文件级入口
# =========================================================================

class MboxExtractor:
    """
    mbox 文件抽取器：读取归档、切分、组装，并累计多次调用的计数。

    参数：
    - identity：身份配置；为 None 时由 Settings（档案 + 环境变量）构建
    - settings：运行配置；为 None 时使用 `get_settings()` 单例
    - trace_hook：可选的追踪回调，每 `TRACE_EVERY` 条记录调用一次
    """

    def __init__(
        self,
        identity: Optional[IdentityConfig] = None,
        settings: Optional[Settings] = None,
        trace_hook: Optional[TraceHook] = None,
    ) -> None:
        self.settings = settings or get_settings()
        set_level(self.settings.LOG_LEVEL)
        self.identity = identity if identity is not None else identity_from_settings(self.settings)
        self.assembler = MessageAssembler(
            self.identity,
            workers=self.settings.WORKERS,
            progress_every=self.settings.PROGRESS_EVERY,
            trace_every=self.settings.TRACE_EVERY,
            trace_hook=trace_hook,
        )
        self.stats = RunStats()

    def _collect(self, splitter: MessageSplitter, label: str) -> Tuple[List[MessageRecord], RunStats]:
        records = list(self.assembler.run(splitter))
        run_stats = self.assembler.stats
        self.stats.merge(run_stats)

        logger.info("Total blocks processed: %d (%s)", run_stats.total, label)
        logger.info("Skipped %d self-emails", run_stats.self_excluded)
        logger.info(
            "Dropped %d unparseable blocks (no headers=%d missing from/to=%d errors=%d)",
            run_stats.dropped_unparseable,
            run_stats.header_failures,
            run_stats.missing_required,
            run_stats.errors,
        )
        logger.info("Found %d non-self emails", run_stats.emitted)
        if run_stats.total and not run_stats.emitted:
            logger.warning("No records kept from %s (%d blocks)", label, run_stats.total)
        return records, run_stats

    def parse_file(self, file_path: Union[str, Path]) -> Tuple[List[MessageRecord], RunStats]:
        """
        解析 mbox 文件。

        抛出：
        - `FileNotFoundError` / `OSError`：文件无法读取时（唯一的致命错误）。
        """
        path = Path(file_path)
        size = path.stat().st_size
        logger.info("Reading mbox file: %s (%.2f MB)", path, size / 1024 / 1024)
        return self._collect(MessageSplitter.from_path(path), path.name)

    def parse_text(self, content: Union[str, bytes]) -> Tuple[List[MessageRecord], RunStats]:
        """解析内存中的归档内容。"""
        return self._collect(MessageSplitter(content), "<memory>")
