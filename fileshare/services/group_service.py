"""Group service: bundles of file codes shared under one code."""

from typing import List, Optional, Tuple

from common.logging_config import get_logger
from fileshare.exceptions import FileNotFoundError, InvalidParamsError, NotFoundError
from fileshare.metadata_store import FileRecord, GroupRecord, MetadataStore

logger = get_logger(__name__)


class GroupService:
    def __init__(self, store: MetadataStore):
        self.store = store

    def create_group(
        self, file_ids: List[str], name: Optional[str] = None
    ) -> Tuple[GroupRecord, List[FileRecord]]:
        """
        Create a group over existing files.

        Args:
            file_ids: Ordered, non-empty list of file codes
            name: Display name; defaults to "File Group (<n> files)"

        Returns:
            (group, member file records in the given order)

        Raises:
            InvalidParamsError: If file_ids is empty
            FileNotFoundError: For the first code not in the store
        """
        if not file_ids or not isinstance(file_ids, list):
            raise InvalidParamsError("No file IDs provided")

        group_name = name or f"File Group ({len(file_ids)} files)"
        try:
            group = self.store.commit_group(group_name, file_ids)
        except KeyError as e:
            raise FileNotFoundError(e.args[0])

        files = [self.store.get_file(file_id) for file_id in group.fileIds]
        return group, files

    def get_group(self, code: str) -> Tuple[GroupRecord, List[FileRecord]]:
        """
        Look up a group and whichever of its members still exist.

        Raises:
            NotFoundError: If no group has this code
        """
        group = self.store.get_group(code)
        if group is None:
            raise NotFoundError("Group not found")

        files = []
        for file_id in group.fileIds:
            record = self.store.get_file(file_id)
            if record is None:
                logger.warning(f"Group {code} references missing file {file_id}")
                continue
            files.append(record)
        return group, files
