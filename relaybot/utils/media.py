"""语音等媒体文件的本地存储。"""

import asyncio
import uuid
from pathlib import Path

from relaybot.bus.events import AudioAttachment
from relaybot.utils.helpers import ensure_dir, get_media_path, safe_filename


class MediaStore:
    """把入站附件写入媒体目录，返回文件路径。"""

    def __init__(self, media_dir: Path | None = None):
        self.media_dir = ensure_dir(media_dir) if media_dir else get_media_path()

    def path_for(self, name: str) -> Path:
        """
        为附件生成一个新的文件路径。

        每次调用都加上随机后缀，同名附件不会互相覆盖；保留原扩展名。

        Args:
            name: 附件原始文件名（可以为空）

        Returns:
            媒体目录下尚不存在的文件路径
        """
        original = Path(safe_filename(name) or "audio")
        stem = original.stem or "audio"
        return self.media_dir / f"{stem}-{uuid.uuid4().hex}{original.suffix}"

    async def save_audio(self, attachment: AudioAttachment) -> Path:
        """
        保存音频附件。

        Args:
            attachment: 音频附件

        Returns:
            保存后的文件路径
        """
        path = self.path_for(attachment.name)
        await asyncio.to_thread(path.write_bytes, attachment.data)
        return path
