from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

from .storage import StorageBrowser, StorageItem


@dataclass(frozen=True)
class FileDescriptor:
    id: str
    name: str
    mime_type: str
    parent_folder_id: str


FileFilter = Callable[[StorageItem], bool]


def crawl(
    browser: StorageBrowser,
    folder_id: str,
    depth: int = 0,
    max_depth: int = 5,
    accept: Optional[FileFilter] = None,
) -> List[FileDescriptor]:
    """Flatten a folder tree into its leaf files.

    Every listing is paged to exhaustion before the next item is visited, so the
    result keeps the source order of each folder with subfolders expanded in
    place. Folders deeper than ``max_depth`` are skipped without error.
    ``accept`` filters leaf files; folders are always descended.
    """
    if depth > max_depth:
        return []

    files: List[FileDescriptor] = []
    page_token: Optional[str] = None
    while True:
        page = browser.list_children(folder_id, page_token)
        for item in page.items:
            if item.is_folder:
                files.extend(crawl(browser, item.id, depth + 1, max_depth, accept))
            elif accept is None or accept(item):
                files.append(
                    FileDescriptor(
                        id=item.id,
                        name=item.name,
                        mime_type=item.mime_type,
                        parent_folder_id=folder_id,
                    )
                )
        page_token = page.next_page_token
        if not page_token:
            break

    return files
