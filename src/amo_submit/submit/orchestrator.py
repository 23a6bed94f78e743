"""
Submission workflows.

SubmissionClient composes the transport, the two pollers and the artifact saver
into linear pipelines:

- new add-on: upload -> validation -> create add-on -> approval -> download
- new version: upload -> validation -> create version -> approval -> download
- latest version: add-on detail -> download

Each stage consumes what the previous stage produced; the first failure aborts
the run.
"""

from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from amo_submit.constants import ADDON_PATH
from amo_submit.exceptions import DownloadFailed, MalformedResponse
from amo_submit.utils import api_url

from .artifacts import ArtifactSaver
from .clock import Clock
from .interfaces import Channel, JsonDict, Pathish, WorkflowContext, WorkflowKind
from .locations import FileLocation
from .polling import ApprovalPoller, ValidationPoller
from .transport import AuthenticatedTransport

if TYPE_CHECKING:
    from amo_submit.config import ClientConfig


def _require(data: Any, key: str, stage: str) -> Any:
    if not isinstance(data, Mapping) or data.get(key) in (None, ""):
        raise MalformedResponse(f"{stage} response has no '{key}'", body=data)
    return data[key]


class SubmissionClient:
    """
    Client for submitting add-ons and versions and fetching the signed result.

    Example:
        async with SubmissionClient(config) as client:
            context = await client.submit_addon("my.xpi", "unlisted", {})
            print(context.saved_path)
    """

    def __init__(
        self,
        config: "ClientConfig",
        clock: Optional[Clock] = None,
        transport: Optional[AuthenticatedTransport] = None,
    ) -> None:
        self.config = config
        self.logger = config.logger
        self.api_url_prefix = config.api_url_prefix
        self.transport = transport or AuthenticatedTransport(
            config.credentials,
            api_url_prefix=config.api_url_prefix,
            logger=config.logger,
        )
        self.validation_poller = ValidationPoller(
            self.transport,
            interval=config.validation_check_interval,
            timeout=config.validation_check_timeout,
            clock=clock,
            logger=config.logger,
        )
        self.approval_poller = ApprovalPoller(
            self.transport,
            interval=config.approval_check_interval,
            timeout=config.approval_check_timeout,
            clock=clock,
            logger=config.logger,
        )
        self.saver = ArtifactSaver(config.download_dir, logger=config.logger)

    async def __aenter__(self) -> "SubmissionClient":
        await self.transport.__aenter__()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.transport.close()

    # -- single requests ---------------------------------------------------

    async def do_new_addon_submit(self, metadata: Mapping[str, Any], uuid: str) -> Any:
        """POST a new add-on built from upload `uuid`; returns the parsed add-on record."""
        url = api_url(self.api_url_prefix, ADDON_PATH)
        body: JsonDict = {"version": {"upload": uuid}, **metadata}
        response = await self.transport.request(url, "POST", body)
        return await self.transport.interpret_json(response)

    async def do_new_version_submit(
        self, addon_id: str, metadata: Mapping[str, Any], uuid: str
    ) -> Any:
        """POST a new version of `addon_id` built from upload `uuid`."""
        url = api_url(self.api_url_prefix, ADDON_PATH, addon_id, "versions")
        body: JsonDict = {"upload": uuid, **metadata}
        response = await self.transport.request(url, "POST", body)
        return await self.transport.interpret_json(response)

    async def _upload_and_validate(
        self, xpi: Pathish, channel: Channel, context: WorkflowContext
    ) -> str:
        self.logger.info(f"Uploading {xpi} to the {channel.value} channel")
        response = await self.transport.upload(xpi, channel)
        upload_body = await self.transport.interpret_json(response)
        context.upload_uuid = await self.validation_poller.wait_for_validation(
            upload_body
        )
        self.logger.info(f"Upload {context.upload_uuid} passed validation")
        return context.upload_uuid

    async def _approve_and_download(
        self, location: FileLocation, context: WorkflowContext
    ) -> WorkflowContext:
        assert context.detail_url is not None
        self.logger.info(f"Waiting for approval of {context.detail_url}")
        context.file_url = await self.approval_poller.wait_for_approval(
            location, context.detail_url
        )
        return await self._download(context)

    async def _download(self, context: WorkflowContext) -> WorkflowContext:
        assert context.file_url is not None
        response = await self.transport.request(context.file_url)
        context.saved_path = await self.saver.save(response)
        return context

    # -- workflows ---------------------------------------------------------

    async def submit_addon(
        self,
        xpi: Pathish,
        channel: Union[Channel, str],
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> WorkflowContext:
        """
        Submit a brand new add-on and download its signed file.

        Parameters:
            xpi (Pathish): Package to upload.
            channel (Union[Channel, str]): "listed" or "unlisted".
            metadata (Optional[Mapping[str, Any]]): Extra add-on fields merged into the request body.

        Returns:
            WorkflowContext: Identifiers produced along the way and the saved file path.
        """
        channel = Channel(channel)
        context = WorkflowContext(kind=WorkflowKind.NEW_ADDON, channel=channel)

        uuid = await self._upload_and_validate(xpi, channel, context)
        addon = await self.do_new_addon_submit(metadata or {}, uuid)
        slug = _require(addon, "slug", "Add-on submission")
        context.addon_id = str(slug)
        context.detail_url = api_url(self.api_url_prefix, ADDON_PATH, slug)

        return await self._approve_and_download(
            FileLocation.for_channel(channel), context
        )

    async def submit_version(
        self,
        xpi: Pathish,
        channel: Union[Channel, str],
        addon_id: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> WorkflowContext:
        """
        Submit a new version of an existing add-on and download its signed file.

        Parameters:
            xpi (Pathish): Package to upload.
            channel (Union[Channel, str]): "listed" or "unlisted".
            addon_id (str): Add-on slug, numeric id or guid.
            metadata (Optional[Mapping[str, Any]]): Extra version fields merged into the request body.
        """
        channel = Channel(channel)
        context = WorkflowContext(
            kind=WorkflowKind.NEW_VERSION, channel=channel, addon_id=addon_id
        )

        uuid = await self._upload_and_validate(xpi, channel, context)
        version = await self.do_new_version_submit(addon_id, metadata or {}, uuid)
        version_id = _require(version, "id", "Version submission")
        context.detail_url = api_url(
            self.api_url_prefix, ADDON_PATH, addon_id, "versions", version_id
        )

        return await self._approve_and_download(FileLocation.VERSION, context)

    async def download_latest_version(self, addon_id: str) -> WorkflowContext:
        """
        Download the file of the current listed version of `addon_id`.

        Raises:
            DownloadFailed: If the add-on has no public current version.
        """
        context = WorkflowContext(
            kind=WorkflowKind.DOWNLOAD_LATEST,
            channel=Channel.LISTED,
            addon_id=addon_id,
        )
        context.detail_url = api_url(self.api_url_prefix, ADDON_PATH, addon_id)
        response = await self.transport.request(context.detail_url)
        addon = await self.transport.interpret_json(response)

        file = FileLocation.LISTED.extract(addon)
        if file is None or not file.is_public:
            raise DownloadFailed(
                f"Add-on {addon_id} has no public version to download",
                endpoint=context.detail_url,
            )
        if not file.url:
            raise MalformedResponse("Current version file has no url", body=addon)
        context.file_url = file.url
        return await self._download(context)
