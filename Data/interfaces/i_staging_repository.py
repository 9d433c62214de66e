from abc import ABC, abstractmethod
from typing import AsyncIterator, BinaryIO


class IStagingRepository(ABC):
    @abstractmethod
    def path_for(self, filename: str) -> str: ...

    @abstractmethod
    async def save_stream(self, chunks: AsyncIterator[bytes], path: str) -> int: ...

    @abstractmethod
    def save_file(self, source: BinaryIO, path: str) -> int: ...

    @abstractmethod
    def delete(self, path: str) -> None: ...
