import enum
import typing as t


class FileType(enum.Enum):

    FILE = "file"
    DIRECTORY = "directory"


class FileInfo:
    """Describes one entry of a bucket.

        file 'doggo.jpg'     folder 'test'
        name      doggo.jpg  |  test
        size            533  |  0
        extension       jpg  |  ''
        type           file  |  directory

        user, group and permissions are whatever the backend reports and may
        be empty strings.
    """

    def __init__(self,
                 name: str,
                 size: int = 0,
                 file_type: FileType = FileType.FILE,
                 extension: str = "",
                 user: str = "",
                 group: str = "",
                 permissions: str = "",
                 modified: t.Optional[str] = None):
        self.name = name
        self.size = max(int(size), 0)
        self.type = file_type
        self.extension = extension
        self.user = user
        self.group = group
        self.permissions = permissions
        self.modified = modified

    def is_file(self) -> bool:
        return self.type == FileType.FILE

    def is_dir(self) -> bool:
        return self.type == FileType.DIRECTORY

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "size": self.size,
            "user": self.user,
            "group": self.group,
            "permissions": self.permissions,
            "extension": self.extension,
            "type": self.type.value,
            "modified": self.modified,
        }

    def __eq__(self, other):
        if not isinstance(other, FileInfo):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"FileInfo({self.name!r}, size={self.size}, type={self.type.value})"
