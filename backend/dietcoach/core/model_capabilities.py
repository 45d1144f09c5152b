from pydantic import BaseModel
from typing import Optional, Dict

class ModelCapability(BaseModel):
    supports_temperature: bool = True
    supports_tools: bool = True
    supports_json_mode: bool = True
    max_output_tokens: Optional[int] = None

class ModelRegistry:
    _capabilities: Dict[str, ModelCapability] = {
        "gpt-4.1": ModelCapability(max_output_tokens=32768),
        "gpt-4.1-mini": ModelCapability(max_output_tokens=32768),
        "gpt-4o-mini": ModelCapability(max_output_tokens=16384),
        # reasoning family rejects sampling params
        "o3-mini": ModelCapability(supports_temperature=False, supports_json_mode=False),
        "o1": ModelCapability(supports_temperature=False, supports_tools=False, supports_json_mode=False),
    }

    _defaults = ModelCapability()

    @classmethod
    def get_capabilities(cls, model_id: str) -> ModelCapability:
        if not model_id:
            return cls._defaults

        if model_id in cls._capabilities:
            return cls._capabilities[model_id]

        if model_id.startswith("o1") or model_id.startswith("o3") or model_id.startswith("o4"):
            return ModelCapability(supports_temperature=False, supports_json_mode=False)

        return cls._defaults
