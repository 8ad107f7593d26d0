"""Protobuf messages of the ComicFuz ``web_manga_viewer`` API.

The message classes are built at import time from a hand-assembled file
descriptor, so no generated ``_pb2`` module is needed. Only the fields this
package reads or sends are declared; unknown fields in responses are skipped
by the protobuf runtime.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "fuz.web_manga_viewer"

_F = descriptor_pb2.FieldDescriptorProto


def _field(
    name: str,
    number: int,
    kind: int,
    type_name: Optional[str] = None,
    repeated: bool = False,
    oneof_index: Optional[int] = None,
) -> descriptor_pb2.FieldDescriptorProto:
    field = _F(
        name=name,
        number=number,
        type=kind,
        label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
    )
    if type_name:
        field.type_name = f".{PACKAGE}.{type_name}"
    if oneof_index is not None:
        field.oneof_index = oneof_index
    return field


def _enum(name: str, values: Sequence[Tuple[str, int]]) -> descriptor_pb2.EnumDescriptorProto:
    return descriptor_pb2.EnumDescriptorProto(
        name=name,
        value=[
            descriptor_pb2.EnumValueDescriptorProto(name=value_name, number=number)
            for value_name, number in values
        ],
    )


def _message(name: str, fields, nested=(), enums=(), oneofs=()) -> descriptor_pb2.DescriptorProto:
    return descriptor_pb2.DescriptorProto(
        name=name,
        field=list(fields),
        nested_type=list(nested),
        enum_type=list(enums),
        oneof_decl=[descriptor_pb2.OneofDescriptorProto(name=oneof) for oneof in oneofs],
    )


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    device_info = _message(
        "DeviceInfo",
        [
            _field("secret", 1, _F.TYPE_STRING),
            _field("app_ver", 2, _F.TYPE_STRING),
            _field("device_type", 3, _F.TYPE_ENUM, "DeviceInfo.DeviceType"),
            _field("os_ver", 4, _F.TYPE_STRING),
            _field("is_tablet", 5, _F.TYPE_BOOL),
            _field("image_quality", 6, _F.TYPE_ENUM, "DeviceInfo.ImageQuality"),
        ],
        enums=[
            _enum("DeviceType", [("IOS", 0), ("ANDROID", 1), ("BROWSER", 2)]),
            _enum("ImageQuality", [("NORMAL", 0), ("HIGH", 1)]),
        ],
    )
    user_point = _message(
        "UserPoint",
        [
            _field("free", 1, _F.TYPE_UINT32),
            _field("paid", 2, _F.TYPE_UINT32),
        ],
    )
    request = _message(
        "WebMangaViewerRequest",
        [
            _field("device_info", 1, _F.TYPE_MESSAGE, "DeviceInfo"),
            _field("use_ticket", 2, _F.TYPE_BOOL),
            _field("consume_point", 3, _F.TYPE_MESSAGE, "UserPoint"),
            _field("chapter_id", 4, _F.TYPE_UINT32, oneof_index=0),
        ],
        oneofs=["chapter_interface"],
    )
    viewer_page = _message(
        "ViewerPage",
        [
            _field("image", 1, _F.TYPE_MESSAGE, "ViewerPage.Image", oneof_index=0),
            _field("webview", 2, _F.TYPE_MESSAGE, "ViewerPage.WebView", oneof_index=0),
            _field("last_page", 3, _F.TYPE_MESSAGE, "ViewerPage.LastPage", oneof_index=0),
        ],
        nested=[
            _message(
                "Image",
                [
                    _field("image_url", 1, _F.TYPE_STRING),
                    _field("url_scheme", 2, _F.TYPE_STRING),
                    _field("iv", 3, _F.TYPE_STRING),
                    _field("encryption_key", 4, _F.TYPE_STRING),
                    _field("image_width", 5, _F.TYPE_UINT32),
                    _field("image_height", 6, _F.TYPE_UINT32),
                    _field("is_extra_page", 7, _F.TYPE_BOOL),
                ],
            ),
            _message("WebView", [_field("url", 1, _F.TYPE_STRING)]),
            _message("LastPage", []),
        ],
        oneofs=["content"],
    )
    manga = _message(
        "Manga",
        [
            _field("manga_id", 1, _F.TYPE_UINT32),
            _field("manga_name", 2, _F.TYPE_STRING),
        ],
    )
    response = _message(
        "WebMangaViewerResponse",
        [
            _field("user_point", 1, _F.TYPE_MESSAGE, "UserPoint"),
            _field("viewer_data", 2, _F.TYPE_MESSAGE, "WebMangaViewerResponse.ViewerData"),
            _field("manga", 11, _F.TYPE_MESSAGE, "Manga"),
            _field("chapter_id", 12, _F.TYPE_UINT32),
        ],
        nested=[
            _message(
                "ViewerData",
                [
                    _field("viewer_title", 1, _F.TYPE_STRING),
                    _field("pages", 2, _F.TYPE_MESSAGE, "ViewerPage", repeated=True),
                    _field("scroll", 3, _F.TYPE_INT32),
                    _field("is_first_page_blank", 4, _F.TYPE_BOOL),
                ],
            )
        ],
    )
    return descriptor_pb2.FileDescriptorProto(
        name="fuz/web_manga_viewer.proto",
        package=PACKAGE,
        syntax="proto3",
        message_type=[device_info, user_point, request, viewer_page, manga, response],
    )


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(_POOL.FindMessageTypeByName(f"{PACKAGE}.{name}"))


DeviceInfo = _message_class("DeviceInfo")
UserPoint = _message_class("UserPoint")
WebMangaViewerRequest = _message_class("WebMangaViewerRequest")
WebMangaViewerResponse = _message_class("WebMangaViewerResponse")
ViewerPage = _message_class("ViewerPage")


def enum_value(message_class, enum_name: str, value_name: str) -> int:
    """Look up the number of a nested enum value, e.g. ``DeviceType.BROWSER``."""
    enum = message_class.DESCRIPTOR.enum_types_by_name[enum_name]
    return enum.values_by_name[value_name].number


def free_chapter_request(chapter_id: int):
    """Request body the web reader sends for a chapter readable for free."""
    return WebMangaViewerRequest(
        device_info=DeviceInfo(
            device_type=enum_value(DeviceInfo, "DeviceType", "BROWSER"),
            image_quality=enum_value(DeviceInfo, "ImageQuality", "HIGH"),
        ),
        use_ticket=False,
        consume_point=UserPoint(free=0, paid=0),
        chapter_id=chapter_id,
    )
