import logging
from dataclasses import replace
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from arch_provider.architecture_provider import ArchitectureProvider
from arch_provider.cancellation import CancellationToken, OperationCancelledError
from arch_provider.data_repository import DataRepository
from arch_provider.evidence import StaticEvidenceProvider
from arch_provider.llm_client import build_chat_llm
from arch_provider.settings import ConfigurationError, ProviderSettings, load_provider_settings

logger = logging.getLogger("arch_provider")

app = FastAPI()

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for dev
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ArchitectureRequest(BaseModel):
    documentation: Optional[str] = None
    packages: Optional[List[str]] = None
    use_aggregation_prompt: bool = True
    timeout: Optional[float] = None


class ComponentOut(BaseModel):
    identifier: str
    name: str
    kind: str


class ArchitectureResponse(BaseModel):
    status: str
    components: List[ComponentOut]


def get_settings() -> ProviderSettings:
    try:
        return load_provider_settings()
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=f"Server misconfigured: {e}")


def get_chat_llm(settings: ProviderSettings = Depends(get_settings)):
    return build_chat_llm(settings)


@app.post("/architecture", response_model=ArchitectureResponse)
async def extract_architecture(
    request: ArchitectureRequest,
    settings: ProviderSettings = Depends(get_settings),
    chat_llm=Depends(get_chat_llm),
):
    if not (request.documentation or "").strip() and not request.packages:
        raise HTTPException(status_code=400, detail="Provide documentation and/or packages")

    try:
        prompts = {
            "documentation_prompt": settings.documentation_prompt if (request.documentation or "").strip() else None,
            "code_prompt": settings.code_prompt if request.packages else None,
        }
        if not request.use_aggregation_prompt:
            prompts["aggregation_prompt"] = None
        request_settings = replace(settings, **prompts).validate()
        provider = ArchitectureProvider.from_settings(
            request_settings,
            chat_llm=chat_llm,
            repository=DataRepository(),
            evidence=StaticEvidenceProvider(request.documentation, request.packages),
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        model = await provider.arun(CancellationToken(request.timeout))
    except OperationCancelledError as e:
        raise HTTPException(status_code=504, detail=str(e))
    except Exception as e:
        logger.exception("Architecture extraction failed")
        raise HTTPException(status_code=500, detail=str(e))

    return ArchitectureResponse(
        status="success",
        components=[ComponentOut(identifier=c.identifier, name=c.name, kind=c.kind) for c in model.components],
    )


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s | %(levelname)s | %(name)s\n%(message)s\n",
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
