from typing import Any, Callable, List, Optional
from datetime import datetime
import logging
import time
import uuid

from config import Settings
from managers.table_manager import TableConnectionManager
from managers.blob_manager import BLOBConnectionManager
from managers.image_manager import ImageGenerationManager
from models.asset import Asset, AssetSummary
from models.job import GenerationRequest, GenerationResponse, Job
from repository import asset as asset_repo
from repository import job as job_repo
from repository import quota as quota_repo
from utils.dates import day_key, day_start, epoch_ms, utc_now

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """パイプラインの失敗。status_code と JSON 本文の追加フィールドを持つ"""
    status_code = 500

    def __init__(self, message: str, job_id: Optional[str] = None, **extra: Any):
        super().__init__(message)
        self.message = message
        self.job_id = job_id
        self.extra = extra


class MissingPromptError(GenerationError):
    status_code = 400


class QuotaExceededError(GenerationError):
    status_code = 429


class AssetGenerationService:
    """
    画像生成ジョブのパイプライン

    1. プロンプト検証 (空なら副作用なしで拒否)
    2. pending のジョブを作成 (以降の失敗は必ずジョブに記録される)
    3. モック: プレースホルダ画像でアセットを作成 → mock_done
    4. 実生成: 日次枠の確保 → 画像API → ストレージへアップロード → アセット作成 → done
    """

    def __init__(
        self,
        settings: Settings,
        tables: TableConnectionManager,
        blobs: Optional[BLOBConnectionManager],
        images: Optional[ImageGenerationManager],
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.tables = tables
        self.blobs = blobs
        self.images = images
        self.clock = clock

    def run(self, request: GenerationRequest, request_id: Optional[str] = None, origin: str = "") -> GenerationResponse:
        request_id = request_id or str(uuid.uuid4())
        run_id = request.run_id or request_id
        started = time.monotonic()
        is_mock = request.mock or self.settings.MOCK_MODE

        logger.info("create_asset.request request_id=%s run_id=%s row_id=%s count=%s mock=%s has_style=%s",
                    request_id, run_id, request.row_id, request.count, is_mock, bool(request.style))

        if not request.prompt:
            logger.info("create_asset.bad_request request_id=%s reason=missing_prompt", request_id)
            raise MissingPromptError("Missing prompt")

        job: Optional[Job] = None
        try:
            job = job_repo.create_job(self.tables, Job(
                request_id=request_id, run_id=run_id, row_id=request.row_id, title=request.title,
                niche=request.niche, style=request.style, requested_count=request.count, is_mock=is_mock,
            ))
            logger.info("create_asset.start request_id=%s job_id=%s count=%s mock=%s",
                        request_id, job.id, request.count, is_mock)

            if is_mock:
                assets = self._run_mock(request, job, origin)
                status = 'mock_done'
            else:
                assets = self._run_generation(request, job, started)
                status = 'done'

            job_repo.update_job(self.tables, job.id, status=status, assets=assets, generated_count=len(assets),
                                finished_at=self.clock(), ms=self._elapsed(started))
            logger.info("create_asset.%s request_id=%s job_id=%s count=%s ms=%s",
                        status, request_id, job.id, len(assets), self._elapsed(started))

            return GenerationResponse(request_id=request_id, run_id=run_id, row_id=request.row_id, job_id=job.id,
                                      mock=is_mock, count=len(assets), assets=assets)
        except GenerationError as e:
            e.extra.update(request_id=request_id, run_id=run_id, row_id=request.row_id)
            raise
        except Exception as e:
            message = str(e) or e.__class__.__name__
            if job is not None:
                try:
                    job_repo.update_job(self.tables, job.id, status='error', error=message, ms=self._elapsed(started))
                except Exception as mark_error:
                    logger.error("create_asset.mark_error_failed job_id=%s error=%s", job.id, mark_error)
            logger.exception("create_asset.crash request_id=%s job_id=%s message=%s",
                             request_id, job.id if job else None, message)
            raise GenerationError("Internal server error", job_id=job.id if job else None,
                                  request_id=request_id, run_id=run_id, row_id=request.row_id) from e

    def _run_mock(self, request: GenerationRequest, job: Job, origin: str) -> List[AssetSummary]:
        """画像APIもストレージも使わない"""
        placeholder_url = self.settings.MOCK_IMAGE_URL or f"{origin.rstrip('/')}/mock.png"
        assets: List[AssetSummary] = []
        for _ in range(request.count):
            asset = asset_repo.create_asset(self.tables, Asset(
                title=request.title, prompt=request.prompt, niche=request.niche, style=request.style,
                image_url=placeholder_url, thumb_url=placeholder_url, storage_path="", source='mock',
                request_id=job.request_id, run_id=job.run_id, row_id=job.row_id, job_id=job.id,
            ))
            assets.append(AssetSummary(asset_id=asset.id, image_url=placeholder_url))
        return assets

    def _run_generation(self, request: GenerationRequest, job: Job, started: float) -> List[AssetSummary]:
        key = day_key(self.settings.DAILY_TZ, self.clock())
        cap = self.settings.DAILY_CAP
        reserved, used_today = quota_repo.reserve(self.tables, key, request.count, cap)
        if not reserved:
            logger.info("create_asset.rate_limited request_id=%s job_id=%s used_today=%s daily_cap=%s day=%s",
                        job.request_id, job.id, used_today, cap, key)
            job_repo.update_job(self.tables, job.id, status='error', error="Daily limit reached",
                                used_today=used_today, daily_cap=cap, ms=self._elapsed(started))
            raise QuotaExceededError("Daily limit reached", job_id=job.id, used_today=used_today, daily_cap=cap)

        assets: List[AssetSummary] = []
        try:
            if self.images is None or self.blobs is None:
                raise RuntimeError("Image generation is not configured")
            t0 = time.monotonic()
            outputs = self.images.generate(request.final_prompt(), request.count)
            logger.info("create_asset.generated request_id=%s job_id=%s images=%s ms=%s",
                        job.request_id, job.id, len(outputs), self._elapsed(t0))

            row = job.row_id or "row"
            for index, output in enumerate(outputs, start=1):
                png = self.images.load_image(output)
                if png is None:
                    logger.warning("create_asset.image_skipped request_id=%s job_id=%s index=%s",
                                   job.request_id, job.id, index)
                    continue
                storage_path = f"assets/{row}-{job.request_id}-{epoch_ms(self.clock())}-{index}.png"
                image_url = self.blobs.upload_png(storage_path, png)
                asset = asset_repo.create_asset(self.tables, Asset(
                    title=request.title, prompt=request.prompt, niche=request.niche, style=request.style,
                    image_url=image_url, thumb_url=image_url, storage_path=storage_path, source='generation',
                    request_id=job.request_id, run_id=job.run_id, row_id=job.row_id, job_id=job.id,
                ))
                assets.append(AssetSummary(asset_id=asset.id, image_url=image_url))
        finally:
            # 日次枠は実際に生成できた枚数だけ消費する
            unused = request.count - len(assets)
            if unused > 0:
                try:
                    quota_repo.release(self.tables, key, unused)
                except Exception as e:
                    logger.error("create_asset.quota_release_failed job_id=%s unused=%s error=%s", job.id, unused, e)

        if not assets:
            job_repo.update_job(self.tables, job.id, status='error', error="No images generated", generated_count=0,
                                ms=self._elapsed(started))
            logger.error("create_asset.error request_id=%s job_id=%s message=No images generated",
                         job.request_id, job.id)
            raise GenerationError("No images generated", job_id=job.id)
        return assets

    @staticmethod
    def _elapsed(started: float) -> int:
        return int((time.monotonic() - started) * 1000)

    def quota_status(self) -> dict:
        now = self.clock()
        key = day_key(self.settings.DAILY_TZ, now)
        used = quota_repo.get_used(self.tables, key)
        cap = self.settings.DAILY_CAP
        return {"day": key, "dayStart": day_start(self.settings.DAILY_TZ, now).isoformat(),
                "timeZone": self.settings.DAILY_TZ, "used": used, "cap": cap, "remaining": max(cap - used, 0)}
