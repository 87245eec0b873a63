from .ark.image import ArkImageAdapter, ark_image_client
from .nano.image import NanoImageAdapter, nano_image_client
from .chat.client import ChatCompletionAdapter, chat_client

__all__ = [
    "ArkImageAdapter",
    "ark_image_client",
    "NanoImageAdapter",
    "nano_image_client",
    "ChatCompletionAdapter",
    "chat_client",
]
