"""编辑面板会话

一个会话对应一个编辑面板（文生图或图生图）：
  - 提示词优化与图片生成各自至多一个在途请求，新请求会取消旧请求
  - 被取代的请求静默返回 None
  - 生成成功后写入历史
"""
import time
from typing import Optional, Tuple

from models.history import HistoryItem, HistoryParams
from models.images import (
    EditorMode, GenerationDraft, GenerationRequest, GenerationResponse,
    PromptEnhanceRequest, SequentialMode, is_nano_model,
)
from services.dimension_service import compute_dimensions
from services.enhance_service import PromptEnhanceService
from services.history_service import HistoryStore
from services.image_service import ImageService
from services.payload_service import inject_aspect_ratio_into_prompt
from utils.cancel import SingleFlight
from utils.exceptions import ImageValidationError, RequestCancelled, ValidationException
from utils.helpers import generate_id
from utils.images import REFERENCE_LIMIT
from utils.logger import logger

I2I_DEFAULT_STEPS = 30
I2I_DEFAULT_GUIDANCE = 7


def default_draft(source: EditorMode) -> GenerationDraft:
    """面板初始状态: 文生图默认不加水印，图生图默认 30 步、guidance 7、加水印"""
    if source == EditorMode.I2I:
        return GenerationDraft(steps=I2I_DEFAULT_STEPS, guidance=I2I_DEFAULT_GUIDANCE, watermark=True)
    return GenerationDraft(watermark=False)


class StudioSession:
    """编辑面板会话"""

    def __init__(self,
                 source: EditorMode,
                 image_service: ImageService,
                 enhance_service: PromptEnhanceService,
                 history: HistoryStore):
        self.source = EditorMode(source)
        self.image_service = image_service
        self.enhance_service = enhance_service
        self.history = history
        self.enhance_flight = SingleFlight("enhance")
        self.generate_flight = SingleFlight("generate")
        self.last_generation: Optional[Tuple[GenerationRequest, GenerationDraft]] = None

    async def enhance(self, prompt: str) -> Optional[str]:
        """优化提示词，空提示词或被取代时返回 None"""
        if not prompt or not prompt.strip():
            return None

        token = self.enhance_flight.begin()
        try:
            result = await self.enhance_service.enhance(
                PromptEnhanceRequest(prompt=prompt, mode=self.source), token
            )
        except RequestCancelled as e:
            logger.debug(f"提示词优化已取消: {e.reason}")
            return None
        finally:
            self.enhance_flight.finish(token)
        return result.enhanced

    def build_request(self, draft: GenerationDraft) -> GenerationRequest:
        """由面板状态组装生成请求"""
        prompt = (draft.prompt_enhanced or draft.prompt_raw or "").strip()
        if not prompt:
            raise ValidationException("Please provide a prompt.")
        if self.source == EditorMode.I2I and not draft.source_image:
            raise ValidationException("Please upload a source image.")
        if len(draft.references) > REFERENCE_LIMIT:
            raise ImageValidationError("count", f"最多只能添加 {REFERENCE_LIMIT} 张参考图")

        dimensions = compute_dimensions(draft.aspect_ratio, draft.resolution)
        prompt = inject_aspect_ratio_into_prompt(draft.model, prompt, draft.aspect_ratio)
        with_images = self.source == EditorMode.I2I

        return GenerationRequest(
            prompt=prompt,
            model=draft.model,
            width=dimensions.width,
            height=dimensions.height,
            size=dimensions.size,
            aspect_ratio=draft.aspect_ratio,
            watermark=draft.watermark,
            stream=draft.stream,
            sequential_image_generation=draft.sequential,
            seed=draft.seed,
            steps=draft.steps,
            guidance_scale=draft.guidance,
            image=draft.source_image if with_images else None,
            references=list(draft.references) if with_images else None,
        )

    async def generate(self, draft: GenerationDraft) -> Optional[GenerationResponse]:
        """按面板状态生成图片"""
        return await self.run_generation(self.build_request(draft), draft)

    async def regenerate(self, draft: GenerationDraft) -> Optional[GenerationResponse]:
        """重新执行上一次请求，没有上一次请求时按当前状态生成"""
        if self.last_generation:
            return await self.run_generation(*self.last_generation)
        return await self.generate(draft)

    async def run_generation(self,
                             request: GenerationRequest,
                             draft: GenerationDraft) -> Optional[GenerationResponse]:
        token = self.generate_flight.begin()
        try:
            response = await self.image_service.create_image(request, token)
        except RequestCancelled as e:
            logger.debug(f"图片生成已取消: {e.reason}")
            return None
        finally:
            self.generate_flight.finish(token)

        self.last_generation = (request, draft)
        self.history.add_item(self._history_item(request, draft, response))
        return response

    def _history_item(self,
                      request: GenerationRequest,
                      draft: GenerationDraft,
                      response: GenerationResponse) -> HistoryItem:
        # Nano 结果是内联 base64，不写入历史
        first_url = response.data[0].url if response.data else None
        if is_nano_model(request.model):
            first_url = None

        params = HistoryParams(
            aspect_ratio=draft.aspect_ratio,
            resolution=draft.resolution,
            width=request.width,
            height=request.height,
            seed=request.seed,
            steps=request.steps,
            guidance=request.guidance_scale,
            watermark=request.watermark if request.watermark is not None else True,
            stream=bool(request.stream),
            sequential_image_generation=request.sequential_image_generation or SequentialMode.DISABLED,
        )
        return HistoryItem(
            id=generate_id(),
            created_at=int(time.time() * 1000),
            source=self.source,
            prompt_raw=draft.prompt_raw,
            prompt_enhanced=draft.prompt_enhanced or None,
            params=params,
            thumb=first_url,
            url=first_url,
        )

    def restore(self, item: HistoryItem) -> GenerationDraft:
        """由历史记录恢复面板状态"""
        params = item.params
        base = default_draft(item.source)
        return GenerationDraft(
            prompt_raw=item.prompt_raw,
            prompt_enhanced=item.prompt_enhanced,
            aspect_ratio=params.aspect_ratio,
            resolution=params.resolution,
            seed=params.seed,
            steps=params.steps if params.steps is not None else base.steps,
            guidance=params.guidance if params.guidance is not None else base.guidance,
            watermark=params.watermark,
            stream=params.stream,
            sequential=params.sequential_image_generation,
        )

    def close(self):
        self.enhance_flight.cancel("session closed")
        self.generate_flight.cancel("session closed")
