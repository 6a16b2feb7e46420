"""Version manifest and version descriptors, typed views built from the structural
scanner. The version manifest enumerates all versions and where to fetch their
descriptor, the descriptor lists the client JAR, libraries, asset index and launch
parameters of a single version.
"""

from threading import Lock
from pathlib import Path

from .scan import is_object, iter_array_objects, iter_members, lookup_object, \
    lookup_scalar, lookup_nested_scalar, parse_scalar
from .event import Watcher, VersionLoadingEvent, VersionFetchingEvent, VersionLoadedEvent
from .http import http_request, TransportError, DEFAULT_TIMEOUT
from .context import Context

from typing import Dict, List, Optional, Tuple


VERSION_MANIFEST_URL = "https://launchermeta.mojang.com/mc/game/version_manifest_v2.json"


class VersionSummary:
    """A version as listed by the version manifest.
    """

    __slots__ = "id", "type", "url"

    def __init__(self, id: str, type: str, url: str) -> None:
        self.id = id
        self.type = type
        self.url = url

    def is_release(self) -> bool:
        return self.type == "release"

    def __eq__(self, other) -> bool:
        return isinstance(other, VersionSummary) and \
            (self.id, self.type, self.url) == (other.id, other.type, other.url)

    def __hash__(self) -> int:
        return hash((self.id, self.type, self.url))

    def __repr__(self) -> str:
        return f"<VersionSummary {self.id} ({self.type})>"


class PlatformRule:
    """A conditional allow/disallow directive attached to a library, the OS name is
    optional and, if missing, the rule matches any platform.
    """

    ALLOW = "allow"
    DISALLOW = "disallow"

    __slots__ = "action", "os_name"

    def __init__(self, action: str, os_name: Optional[str] = None) -> None:
        self.action = action
        self.os_name = os_name

    def matches(self, os_name: str) -> bool:
        return self.os_name is None or self.os_name == os_name

    def __repr__(self) -> str:
        return f"<PlatformRule {self.action} {self.os_name or '*'}>"


class Artifact:
    """A downloadable file, its path is relative to the libraries directory.
    """

    __slots__ = "path", "url"

    def __init__(self, path: str, url: Optional[str]) -> None:
        self.path = path
        self.url = url

    @classmethod
    def parse(cls, text: str) -> "Optional[Artifact]":
        path = lookup_scalar(text, "path")
        if path is None:
            return None
        return cls(path, lookup_scalar(text, "url"))

    def __repr__(self) -> str:
        return f"<Artifact {self.path}>"


class LibraryEntry:
    """A library of a version descriptor, with its optional platform rules, its artifact
    and its native classifiers.
    """

    __slots__ = "name", "rules", "artifact", "classifiers", "natives"

    def __init__(self,
        name: Optional[str] = None,
        rules: Optional[List[PlatformRule]] = None,
        artifact: Optional[Artifact] = None,
        classifiers: Optional[Dict[str, Artifact]] = None,
        natives: Optional[Dict[str, str]] = None
    ) -> None:
        self.name = name
        self.rules = rules
        self.artifact = artifact
        self.classifiers = {} if classifiers is None else classifiers
        self.natives = {} if natives is None else natives

    @classmethod
    def parse(cls, text: str) -> "LibraryEntry":
        """Parse a library from the verbatim text of its object. Missing or malformed
        fields are left empty.
        """

        rules = None
        if any(key == "rules" for key, _ in iter_members(text)):
            rules = []
            for rule_text in iter_array_objects(text, "rules"):
                action = lookup_scalar(rule_text, "action")
                if action is not None:
                    rules.append(PlatformRule(action, lookup_nested_scalar(rule_text, ("os", "name"))))

        artifact = None
        classifiers = {}
        downloads = lookup_object(text, "downloads")
        if downloads is not None:
            artifact_text = lookup_object(downloads, "artifact")
            if artifact_text is not None:
                artifact = Artifact.parse(artifact_text)
            classifiers_text = lookup_object(downloads, "classifiers")
            if classifiers_text is not None:
                for classifier, classifier_text in iter_members(classifiers_text):
                    classifier_artifact = Artifact.parse(classifier_text)
                    if classifier_artifact is not None:
                        classifiers[classifier] = classifier_artifact

        natives = {}
        natives_text = lookup_object(text, "natives")
        if natives_text is not None:
            for os_name, raw in iter_members(natives_text):
                classifier = parse_scalar(raw)
                if classifier is not None:
                    natives[os_name] = classifier

        return cls(lookup_scalar(text, "name"), rules, artifact, classifiers, natives)

    def is_allowed(self, os_name: str) -> bool:
        """Evaluate the rules of this library top to bottom for the given OS, the first
        matching disallow rule excludes the library, it's allowed by default.
        """
        if self.rules is not None:
            for rule in self.rules:
                if rule.action == PlatformRule.DISALLOW and rule.matches(os_name):
                    return False
        return True

    def native_classifier(self, os_name: str, arch_bits: Optional[int]) -> Optional[str]:
        """Return the name of the native classifier for the given platform. If the library
        has a natives mapping, it decides, otherwise the classifier is `natives-<os>`.
        """
        if len(self.natives):
            classifier = self.natives.get(os_name)
            if classifier is not None and arch_bits is not None:
                classifier = classifier.replace("${arch}", str(arch_bits))
            return classifier
        return f"natives-{os_name}"

    def native_artifact(self, os_name: str, arch_bits: Optional[int]) -> Optional[Artifact]:
        classifier = self.native_classifier(os_name, arch_bits)
        if classifier is None:
            return None
        return self.classifiers.get(classifier)

    def __repr__(self) -> str:
        return f"<LibraryEntry {self.name or self.artifact}>"


class AssetIndexRef:
    """Reference to the asset index of a version.
    """

    __slots__ = "id", "url"

    def __init__(self, id: str, url: str) -> None:
        self.id = id
        self.url = url

    def __repr__(self) -> str:
        return f"<AssetIndexRef {self.id}>"


class VersionDescriptor:
    """The fields consumed from a version's descriptor. Instances are built once from the
    descriptor's text and never modified.
    """

    __slots__ = "id", "type", "client_url", "libraries", "asset_index", "main_class", \
        "minecraft_arguments"

    def __init__(self,
        id: str,
        type: Optional[str] = None,
        client_url: Optional[str] = None,
        libraries: Tuple[LibraryEntry, ...] = (),
        asset_index: Optional[AssetIndexRef] = None,
        main_class: Optional[str] = None,
        minecraft_arguments: Optional[str] = None
    ) -> None:
        self.id = id
        self.type = type
        self.client_url = client_url
        self.libraries = libraries
        self.asset_index = asset_index
        self.main_class = main_class
        self.minecraft_arguments = minecraft_arguments

    @classmethod
    def parse(cls, version: str, text: str) -> "VersionDescriptor":
        """Parse a descriptor's text, the given version identifier is used if the
        descriptor doesn't carry its own.

        :raises ParseError: If the text is not a JSON object.
        """

        if not is_object(text):
            raise ParseError(f"descriptor of {version} is not an object")

        asset_index = None
        asset_index_id = lookup_nested_scalar(text, ("assetIndex", "id")) or lookup_scalar(text, "assets")
        asset_index_url = lookup_nested_scalar(text, ("assetIndex", "url"))
        if asset_index_id is not None and asset_index_url is not None:
            asset_index = AssetIndexRef(asset_index_id, asset_index_url)

        return cls(
            lookup_scalar(text, "id") or version,
            type=lookup_scalar(text, "type"),
            client_url=lookup_nested_scalar(text, ("downloads", "client", "url")),
            libraries=tuple(map(LibraryEntry.parse, iter_array_objects(text, "libraries"))),
            asset_index=asset_index,
            main_class=lookup_scalar(text, "mainClass"),
            minecraft_arguments=lookup_scalar(text, "minecraftArguments"))

    def is_legacy_arguments(self) -> bool:
        """True if this version expects its game arguments as a single string template.
        """
        return self.minecraft_arguments is not None

    def __repr__(self) -> str:
        return f"<VersionDescriptor {self.id}>"


class VersionManifest:
    """The official version manifest, providing available versions with an optional cache
    file used when offline.

    The list of versions is an immutable snapshot which is replaced as a whole on each
    fetch, readers never need to lock.
    """

    def __init__(self,
        cache_file: Optional[Path] = None, *,
        url: str = VERSION_MANIFEST_URL,
        timeout: Optional[float] = DEFAULT_TIMEOUT
    ) -> None:
        self.cache_file = cache_file
        self.url = url
        self.timeout = timeout
        self.cached = False
        self._versions: Optional[Tuple[VersionSummary, ...]] = None
        self._write_lock = Lock()

    def fetch(self) -> Tuple[VersionSummary, ...]:
        """Fetch the manifest again and replace the current snapshot of versions.

        :return: The new snapshot of versions, in manifest order.
        :raises TransportError: If the manifest could not be requested and no cache is
        available.
        """

        with self._write_lock:

            cached = False
            try:
                text = http_request("GET", self.url, accept="application/json", timeout=self.timeout).text()
            except TransportError as error:
                # Status 0 means network error, in such case we want to ignore it and
                # use the cached data if present.
                text = self._read_cache() if error.res.status == 0 else None
                if text is None:
                    raise
                cached = True
            else:
                self._write_cache(text)

            versions = tuple(parse_version_summaries(text))
            self._versions = versions
            self.cached = cached
            return versions

    def all_versions(self) -> Tuple[VersionSummary, ...]:
        """Return all versions of the current snapshot, fetching it if needed.
        """
        versions = self._versions
        if versions is None:
            versions = self.fetch()
        return versions

    def releases(self) -> List[VersionSummary]:
        """Return only the release versions, those offered to version selection.
        """
        return [version for version in self.all_versions() if version.is_release()]

    def get_version(self, version: str) -> Optional[VersionSummary]:
        """Get a version's summary given its identifier, regardless of its type.
        """
        for summary in self.all_versions():
            if summary.id == version:
                return summary
        return None

    def _read_cache(self) -> Optional[str]:
        if self.cache_file is None:
            return None
        try:
            return self.cache_file.read_text(encoding="utf-8")
        except OSError:
            return None

    def _write_cache(self, text: str) -> None:
        if self.cache_file is not None:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            self.cache_file.write_text(text, encoding="utf-8")


def parse_version_summaries(text: str) -> List[VersionSummary]:
    """Extract the version summaries of a manifest's text, entries missing any of their
    identifier, type or URL are ignored.
    """
    summaries = []
    for version_text in iter_array_objects(text, "versions"):
        version_id = lookup_scalar(version_text, "id")
        version_type = lookup_scalar(version_text, "type")
        version_url = lookup_scalar(version_text, "url")
        if version_id is not None and version_type is not None and version_url is not None:
            summaries.append(VersionSummary(version_id, version_type, version_url))
    return summaries


def fetch_descriptor(summary: VersionSummary, context: Context, watcher: Optional[Watcher] = None, *,
    timeout: Optional[float] = DEFAULT_TIMEOUT
) -> VersionDescriptor:
    """Load the descriptor of the given version from the versions directory, or fetch it
    and store it there if missing. A stored descriptor is never fetched again.

    :raises TransportError: If the descriptor needs to be fetched and the request fails.
    :raises ParseError: If the descriptor is not a JSON object.
    """

    watcher = watcher or Watcher()
    watcher.handle(VersionLoadingEvent(summary.id))

    handle = context.get_version(summary.id)
    descriptor_file = handle.descriptor_file()
    fetched = False

    try:
        text = descriptor_file.read_text(encoding="utf-8")
    except FileNotFoundError:
        watcher.handle(VersionFetchingEvent(summary.id))
        res = http_request("GET", summary.url, accept="application/json", timeout=timeout)
        text = res.text()
        # Parse before writing, so that an invalid descriptor is never cached.
        descriptor = VersionDescriptor.parse(summary.id, text)
        handle.dir.mkdir(parents=True, exist_ok=True)
        with descriptor_file.open("wb") as fp:
            fp.write(res.data)
        fetched = True
    else:
        descriptor = VersionDescriptor.parse(summary.id, text)

    watcher.handle(VersionLoadedEvent(summary.id, fetched))
    return descriptor


class ParseError(Exception):
    """Raised when a document the launch can't proceed without misses an expected field.
    """

class VersionNotFoundError(ParseError):
    """Raised when a version was not found in the manifest. The version that was not
    found is given.
    """
    def __init__(self, version: str) -> None:
        super().__init__(version)
        self.version = version

    def __str__(self) -> str:
        return repr(self.version)
