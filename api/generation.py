from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from typing import List
import uuid

from api.dependencies import get_generation_service, get_table_manager
from managers.auth_manager import require_automation_secret
from managers.table_manager import TableConnectionManager
from models.job import GenerationRequest, GenerationResponse, Job
from models.prompt_template import PROMPT_TEMPLATES, PromptTemplate, PromptRenderRequest, PromptRenderResponse, find_template
from repository import job as job_repo
from services.generation import AssetGenerationService, GenerationError

router = APIRouter()


def request_origin(request: Request) -> str:
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme or "https"
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc or "localhost:3000"
    return f"{proto}://{host}"


@router.post("/generate-asset", response_model=GenerationResponse, tags=["generation"],
             dependencies=[Depends(require_automation_secret)])
async def generate_asset(
    request: Request,
    generation: GenerationRequest = Body(..., description="prompt / style / count / mock"),
    service: AssetGenerationService = Depends(get_generation_service),
):
    """画像を生成してアセットとして登録する (内部自動化用)"""
    request_id = str(uuid.uuid4())
    try:
        return await run_in_threadpool(service.run, generation, request_id, request_origin(request))
    except GenerationError as e:
        content = {"ok": False, "requestId": request_id, "jobId": e.job_id, "error": e.message}
        for key, value in e.extra.items():
            content[_camel(key)] = value
        return JSONResponse(status_code=e.status_code, content=content)


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


@router.get("/jobs/{job_id}", response_model=Job, tags=["generation"])
async def get_job(
    job_id: str = Path(..., description="Job ID to retrieve"),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    job = job_repo.get_job(tables, job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return job


@router.get("/generation/quota", tags=["generation"])
async def get_quota(service: AssetGenerationService = Depends(get_generation_service)):
    """当日の生成枠"""
    return service.quota_status()


@router.get("/prompt-templates", response_model=List[PromptTemplate], tags=["generation"])
async def list_prompt_templates():
    return PROMPT_TEMPLATES


@router.post("/prompt-templates/{template_id}/render", response_model=PromptRenderResponse, tags=["generation"])
async def render_prompt_template(
    template_id: str = Path(...),
    render: PromptRenderRequest = Body(PromptRenderRequest()),
):
    template = find_template(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail=f"Template {template_id} not found")
    return PromptRenderResponse(template_id=template.id, prompt=template.build(render.variables))
