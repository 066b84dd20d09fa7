from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, Union

from shipping_rate_analysis.api.client import QuoteClient
from shipping_rate_analysis.io.store import AnalysisStore
from shipping_rate_analysis.io.upload import Upload, read_upload
from shipping_rate_analysis.models import (
    CarrierAccount,
    CarrierOutcome,
    FieldMapping,
    OrphanReason,
    OrphanedShipment,
    ServiceMappingResult,
)
from shipping_rate_analysis.pipelines.finalizer import DEFAULT_DUPLICATE_WINDOW_SECONDS, Finalizer
from shipping_rate_analysis.pipelines.quoter import QuoteJob, Quoter
from shipping_rate_analysis.pipelines.rate_resolver import (
    ClassifiedShipment,
    RateResolver,
    Resolution,
    orphan_for,
)
from shipping_rate_analysis.pipelines.shipment_builder import ShipmentBuilder
from shipping_rate_analysis.rules.carrier_registry import DEFAULT_REGISTRY, CarrierRegistry
from shipping_rate_analysis.rules.field_classifier import (
    CONSERVATIVE,
    FieldClassifier,
    as_header_map,
    missing_required,
)
from shipping_rate_analysis.rules.markup import NO_MARKUP, MarkupConfig
from shipping_rate_analysis.rules.residential import resolve_residential
from shipping_rate_analysis.rules.service_normalizer import ServiceNormalizer
from shipping_rate_analysis.utils.batching import DEFAULT_BATCH_SIZE, process_in_batches


@dataclass
class AnalysisResult:
    file_name: str
    total_rows: int
    field_mappings: list[FieldMapping]
    missing_fields: list[str]
    service_types: list[ServiceMappingResult]
    classified: list[ClassifiedShipment]
    resolution: Resolution
    orphans: list[OrphanedShipment] = field(default_factory=list)
    analysis_id: Optional[str] = None
    duplicate: bool = False

    @property
    def processed_count(self) -> int:
        return len(self.resolution.per_shipment)

    def to_payload(self, markup: MarkupConfig = NO_MARKUP) -> dict[str, Any]:
        res = self.resolution
        return {
            "file_name": self.file_name,
            "total_rows": self.total_rows,
            "field_mappings": [
                {"field": m.field_name, "header": m.source_header, "confidence": m.confidence}
                for m in self.field_mappings
            ],
            "missing_fields": list(self.missing_fields),
            "service_types": [
                {"original": s.original, "category": s.category, "confidence": s.confidence,
                 "rule": s.matched_rule, "needs_review": s.needs_review}
                for s in self.service_types
            ],
            "markup": {
                "kind": markup.kind,
                "global_percentage": str(markup.global_percentage),
                "service_markups": {k: str(v) for k, v in markup.service_markups.items()},
            },
            "best_account": None if res.best_account is None else {
                "carrier_id": res.best_account.carrier_id,
                "account_name": res.best_account.account_name,
                "carrier_type": res.best_account.carrier_type.value,
            },
            "account_totals": {k: str(v) for k, v in res.account_totals.items()},
            "account_coverage": dict(res.account_coverage),
            "best_rates": {
                k: {**b.quote.to_dict(), "competitor_count": b.competitor_count}
                for k, b in res.best_rates.items()
            },
            "shipments": [r.to_dict() for r in res.per_shipment],
            "orphans": [o.to_dict() for o in self.orphans],
            "rate_snapshots": list(res.rate_snapshots),
            "failure_report": res.failure_report.to_dict(),
            "totals": res.totals.to_dict(),
        }


class AnalysisProcessor:
    """Orchestrates header classification, shipment building, service and
    residential annotation, quoting, resolution and persistence."""

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        *,
        client: Optional[QuoteClient] = None,
        accounts: Sequence[CarrierAccount] = (),
        registry: CarrierRegistry = DEFAULT_REGISTRY,
        normalizer: Optional[ServiceNormalizer] = None,
        markup: MarkupConfig = NO_MARKUP,
        mapping_mode: str = CONSERVATIVE,
        origin_zip: Optional[str] = None,
        min_service_confidence: float = 0.0,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_pause: float = 0.0,
        max_workers: int = 4,
        store: Optional[AnalysisStore] = None,
        user_id: Optional[str] = None,
        duplicate_window_seconds: int = DEFAULT_DUPLICATE_WINDOW_SECONDS,
        clock: Optional[Callable[[], dt.datetime]] = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self.client = client
        self.accounts = [a for a in accounts if a.is_active]
        self.registry = registry
        self.normalizer = normalizer or ServiceNormalizer()
        self.markup = markup
        self.classifier = FieldClassifier(mapping_mode)
        self.origin_zip = origin_zip
        self.min_service_confidence = float(min_service_confidence)
        self.batch_size = int(batch_size)
        self.batch_pause = float(batch_pause)
        self.quoter = Quoter(client, registry, max_workers=max_workers, logger=self.logger) if client else None
        self.resolver = RateResolver(registry, markup, logger=self.logger)
        self.store = store
        self.user_id = user_id
        self.finalizer = None
        if store is not None:
            kwargs: dict[str, Any] = {"window_seconds": duplicate_window_seconds, "logger": self.logger}
            if clock is not None:
                kwargs["clock"] = clock
            self.finalizer = Finalizer(store, **kwargs)

    # ---- stages ----

    def _classify(self, cs_shipment, orphans: list[OrphanedShipment]) -> Optional[ClassifiedShipment]:
        mapping = self.normalizer.normalize(cs_shipment.service)
        residential = resolve_residential(cs_shipment, mapping)
        cs = ClassifiedShipment(cs_shipment, mapping, residential)
        if mapping.matched_rule == "empty" or mapping.confidence < self.min_service_confidence:
            orphans.append(orphan_for(
                cs, OrphanReason.UNCLASSIFIED_SERVICE,
                f"Service {cs_shipment.service!r} could not be classified "
                f"(confidence {mapping.confidence:.2f})"))
            return None
        return cs

    def _run_batch(
        self,
        builder: ShipmentBuilder,
        rows: Sequence[dict[str, str]],
        start: int,
        orphans: list[OrphanedShipment],
        outcomes: dict[int, list[CarrierOutcome]],
    ) -> list[ClassifiedShipment]:
        built = builder.build(rows, start=start)
        orphans.extend(built.orphans)

        classified: list[ClassifiedShipment] = []
        for s in built.shipments:
            cs = self._classify(s, orphans)
            if cs is not None:
                classified.append(cs)

        if self.quoter is not None and self.accounts and classified:
            jobs = [QuoteJob(cs.shipment, cs.category, cs.residential.is_residential) for cs in classified]
            outcomes.update(self.quoter.quote_all(jobs, self.accounts))
        return classified

    # ---- public API ----

    def analyze(self, upload: Upload) -> AnalysisResult:
        mappings = self.classifier.classify(upload.headers)
        missing = missing_required(mappings)
        if self.origin_zip and "origin_zip" in missing:
            missing.remove("origin_zip")
        if missing:
            self.logger.warning("Required field(s) not mapped: %s", ", ".join(missing))
        for m in mappings:
            self.logger.debug("map %s <- %r (%.2f)", m.field_name, m.source_header, m.confidence)

        header_map = as_header_map(mappings)
        builder = ShipmentBuilder(header_map, origin_zip_override=self.origin_zip, logger=self.logger)

        service_header = header_map.get("service")
        service_types = self.normalizer.detect_service_types(
            upload.column(service_header) if service_header else [])

        started = None
        if self.finalizer is not None:
            started = self.finalizer.begin(upload.file_name, len(upload.rows), user_id=self.user_id)

        orphans: list[OrphanedShipment] = []
        outcomes: dict[int, list[CarrierOutcome]] = {}
        indexed = list(enumerate(upload.rows, start=1))

        def run(batch: Sequence[tuple[int, dict[str, str]]]) -> list[ClassifiedShipment]:
            return self._run_batch(builder, [r for _, r in batch], batch[0][0], orphans, outcomes)

        classified = process_in_batches(
            indexed, run,
            batch_size=self.batch_size,
            pause=self.batch_pause,
            logger=self.logger,
        )

        if self.quoter is None:
            self.logger.info("No quoting client configured; every classified shipment will be orphaned")

        resolution = self.resolver.resolve(classified, outcomes)
        all_orphans = sorted([*orphans, *resolution.orphans], key=lambda o: o.shipment_id)

        result = AnalysisResult(
            file_name=upload.file_name,
            total_rows=len(upload.rows),
            field_mappings=mappings,
            missing_fields=missing,
            service_types=service_types,
            classified=classified,
            resolution=resolution,
            orphans=all_orphans,
        )
        self.logger.info(
            "Analyzed %s: %d rows -> %d priced, %d orphaned",
            upload.file_name or "<upload>", result.total_rows, result.processed_count, len(all_orphans),
        )

        if started is not None:
            # completes the processing record registered above, or reuses a finished one
            fin = self.finalizer.finalize(
                upload.file_name, result.total_rows, result.to_payload(self.markup), user_id=self.user_id)
            result.analysis_id = fin.analysis_id
            result.duplicate = started.duplicate
        return result

    def process(self, input_path: Union[str, Path]) -> AnalysisResult:
        input_path = Path(input_path)
        if not input_path.exists():
            self.logger.error("Input file does not exist: %s", input_path)
            raise FileNotFoundError(input_path)
        return self.analyze(read_upload(input_path))


__all__ = ["AnalysisResult", "AnalysisProcessor"]
