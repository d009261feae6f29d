"""Editing session: one project plus every generation operation on it."""
from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Awaitable, Callable

from . import imagegen, scriptgen, storyboard
from .config import BATCH_PAUSE, IMAGE_BATCH_SIZE, MAX_EXTRA_ANCHORS, RATIO_TO_SIZE, Config
from .continuity import ContinuityState, analyze_style
from .errors import (
    CREDENTIAL_KINDS,
    ErrorKind,
    GenerationCancelled,
    ResponseParseError,
    classify_error,
    is_critical,
    user_message,
)
from .media import BlobStore, LocalBlobStore
from .models import (
    AudioTrack,
    Project,
    ProjectAssets,
    ProjectSettings,
    Scene,
    SceneKind,
    SceneMetadata,
    Shot,
    VideoStatus,
    to_data_url,
)
from .musicgen import MusicRequest, SunoClient, generate_soundtrack
from .project_io import dumps, loads
from .provider import InlineImage, ProviderAdapter
from .retry import retry_operation
from .videogen import CancelToken, PollState, VideoJobPoller

log = logging.getLogger(__name__)

EDITABLE_SHOT_FIELDS = frozenset({
    "visual_description", "generation_prompt", "caption", "dialogue",
    "focus_character_ref", "camera", "lighting", "sound_fx",
})
EDITABLE_METADATA_FIELDS = frozenset({"setting", "lighting", "costume_rule", "mood"})
ANCHOR_KINDS = ("costume", "environment")
ASSET_GROUPS = {"hero": "heroes", "support": "supports", "item": "items", "location": "locations"}

INSERT_SHOT_PLACEHOLDER = "Analyzing context & constraints..."
INSERT_SHOT_FALLBACK = "Scene bridge..."

Sleep = Callable[[float], Awaitable[None]]


class Studio:
    """Owns a :class:`Project` and applies generation results to it.

    Every update replaces one scene or shot by id on the latest scene list,
    so concurrently finishing calls (a batch of shot images, a video poll,
    a user edit) never overwrite each other's results.

    Hooks:
        progress_cb:          human-readable progress lines.
        on_credential_needed: ``(kind, message)`` when a key is missing,
                              invalid or out of quota.
        on_alert:             ``message`` for every other failure.
    """

    def __init__(
        self,
        config: Config,
        project: Project | None = None,
        *,
        adapter: ProviderAdapter | None = None,
        blob_store: BlobStore | None = None,
        music_client: SunoClient | None = None,
        progress_cb: Callable[[str], None] | None = None,
        on_credential_needed: Callable[[ErrorKind, str], None] | None = None,
        on_alert: Callable[[str], None] | None = None,
        sleep: Sleep | None = None,
    ):
        self.config = config
        self.project = project or Project()
        self.adapter = adapter or ProviderAdapter(config)
        self.blob_store = blob_store or LocalBlobStore(config.output_dir / "media")
        self.music_client = music_client
        self.progress_cb = progress_cb or (lambda msg: None)
        self.on_credential_needed = on_credential_needed or (lambda kind, msg: None)
        self.on_alert = on_alert or (lambda msg: None)
        self._sleep = sleep
        self._video_tokens: dict[str, CancelToken] = {}
        self._music_token: CancelToken | None = None

    async def aclose(self) -> None:
        await self.adapter.aclose()

    # -- plumbing -----------------------------------------------------------

    async def _retry(self, operation):
        return await retry_operation(operation, sleep=self._sleep or asyncio.sleep)

    async def _pause(self, seconds: float) -> None:
        await (self._sleep or asyncio.sleep)(seconds)

    @property
    def continuity(self) -> ContinuityState:
        return self.project.continuity

    def _set(self, **changes: Any) -> None:
        self.project = self.project.model_copy(update=changes)

    def _set_scenes(self, scenes: list[Scene]) -> None:
        self._set(scenes=scenes)

    def _patch_scene(self, scene_id: str, **changes: Any) -> None:
        self._set_scenes(storyboard.patch_scene(self.project.scenes, scene_id, **changes))

    def _patch_shot(self, scene_id: str, shot_id: str, **changes: Any) -> None:
        self._set_scenes(storyboard.patch_shot(self.project.scenes, scene_id, shot_id, **changes))

    def _patch_metadata(self, scene_id: str, **changes: Any) -> None:
        def apply(scene: Scene) -> Scene:
            meta = (scene.metadata or SceneMetadata()).model_copy(update=changes)
            return scene.model_copy(update={"metadata": meta})
        self._set_scenes(storyboard.update_scene(self.project.scenes, scene_id, apply))

    def require_scene(self, scene_id: str) -> Scene:
        scene = self.project.scene(scene_id)
        if scene is None:
            raise KeyError(f"Unknown scene {scene_id}")
        return scene

    def require_shot(self, scene_id: str, shot_id: str) -> Shot:
        shot = self.project.shot(scene_id, shot_id)
        if shot is None:
            raise KeyError(f"Unknown shot {shot_id} in scene {scene_id}")
        return shot

    def handle_api_error(self, error: BaseException) -> ErrorKind:
        """Route a failure to the credential prompt or to a plain alert."""
        kind = classify_error(error)
        message = user_message(error, kind)
        if kind in CREDENTIAL_KINDS:
            log.warning("Credential problem (%s): %s", kind.value, error)
            self.on_credential_needed(kind, message)
        else:
            log.error("Operation failed (%s): %s", kind.value, error)
            self.on_alert(message)
        return kind

    @contextmanager
    def _reporting(self, what: str):
        try:
            yield
        except GenerationCancelled:
            log.info("%s cancelled", what)
            raise
        except Exception as e:
            log.debug("%s failed", what, exc_info=True)
            self.handle_api_error(e)
            raise

    # -- project ------------------------------------------------------------

    def new_project(self, settings: ProjectSettings, assets: ProjectAssets) -> Project:
        """Start over with fresh settings and references; continuity resets."""
        self.project = Project(settings=settings, assets=assets)
        return self.project

    def update_settings(self, **changes: Any) -> ProjectSettings:
        settings = ProjectSettings.model_validate({**self.project.settings.model_dump(), **changes})
        self._set(settings=settings)
        return settings

    def rename_asset(self, group: str, asset_id: str, name: str) -> None:
        field = ASSET_GROUPS.get(group)
        if field is None:
            raise ValueError(f"Unknown asset group {group!r}")
        assets = self.project.assets
        items = getattr(assets, field)
        if not any(a.id == asset_id for a in items):
            raise KeyError(f"Unknown {group} {asset_id}")
        renamed = [a.model_copy(update={"name": name}) if a.id == asset_id else a for a in items]
        self._set(assets=assets.model_copy(update={field: renamed}))

    def export_snapshot(self) -> str:
        return dumps(self.project)

    def load_snapshot(self, text: str | bytes | dict) -> Project:
        self.project = loads(text)
        return self.project

    # -- style & script -----------------------------------------------------

    async def analyze_style(self) -> ContinuityState:
        heroes = self.project.assets.heroes
        if not heroes:
            raise ValueError("At least one hero reference image is required.")
        hero = InlineImage(heroes[0].image_bytes, heroes[0].mime_type)
        with self._reporting("Style analysis"):
            state = await analyze_style(self.adapter, hero, self._retry)
        self._set(continuity=state)
        return state

    async def plan_script(self) -> list[Scene]:
        p = self.project
        with self._reporting("Script planning"):
            plan = await scriptgen.plan_script(
                self.adapter, p.settings, p.assets, p.continuity, self._retry
            )
        if plan.masterpiece_ref:
            self._set(settings=self.project.settings.model_copy(
                update={"masterpiece_ref": plan.masterpiece_ref}
            ))
        return plan.scenes

    async def launch(self) -> list[Scene]:
        """Analyze style, plan the script and lay out cover, story and back cover."""
        self.progress_cb("🎨 Analyzing vision & style...")
        await self.analyze_style()
        self.progress_cb(f"📝 Writing script ({self.continuity.category.value})...")
        story = await self.plan_script()
        p = self.project
        scenes = [scriptgen.make_cover(p.settings, p.assets), *story, scriptgen.make_back_cover()]
        self._set_scenes(scenes)
        self.progress_cb(f"✅ Script ready: {len(story)} scenes")
        return self.project.scenes

    # -- anchors ------------------------------------------------------------

    async def generate_scene_anchors(self, scene_id: str, *, force: bool = False) -> SceneMetadata:
        """Render missing costume/environment anchors (all of them when *force*)."""
        scene = self.require_scene(scene_id)
        meta = scene.metadata or SceneMetadata()
        p = self.project
        updated = await imagegen.generate_scene_anchors(
            self.adapter, meta, scene.shots, p.assets, p.settings, p.continuity, self._retry, force=force
        )
        changes = {
            key: getattr(updated, key)
            for key in ("anchor_costume_image", "anchor_environment_image")
            if getattr(updated, key) != getattr(meta, key)
        }
        if changes:
            self._patch_metadata(scene_id, **changes)
        return self.require_scene(scene_id).metadata or SceneMetadata()

    async def regenerate_anchor(self, scene_id: str, kind: str) -> str | None:
        if kind not in ANCHOR_KINDS:
            raise ValueError(f"Unknown anchor kind {kind!r}")
        scene = self.require_scene(scene_id)
        meta = scene.metadata or SceneMetadata()
        p = self.project
        with self._reporting("Anchor generation"):
            if kind == "costume":
                url = await imagegen.generate_costume_anchor(
                    self.adapter, meta, scene.shots, p.assets, p.settings, p.continuity, self._retry
                )
            else:
                url = await imagegen.generate_environment_anchor(
                    self.adapter, meta, p.settings, p.continuity, self._retry
                )
        if url:
            self._patch_metadata(scene_id, **{f"anchor_{kind}_image": url})
        return url

    def set_anchor_image(self, scene_id: str, kind: str, data: bytes, mime_type: str = "image/png") -> None:
        if kind not in ANCHOR_KINDS:
            raise ValueError(f"Unknown anchor kind {kind!r}")
        self.require_scene(scene_id)
        self._patch_metadata(scene_id, **{f"anchor_{kind}_image": to_data_url(data, mime_type)})

    def clear_anchor_image(self, scene_id: str, kind: str) -> None:
        if kind not in ANCHOR_KINDS:
            raise ValueError(f"Unknown anchor kind {kind!r}")
        self.require_scene(scene_id)
        self._patch_metadata(scene_id, **{f"anchor_{kind}_image": None})

    def add_extra_anchor(self, scene_id: str, data: bytes, mime_type: str = "image/png") -> int:
        meta = self.require_scene(scene_id).metadata or SceneMetadata()
        if len(meta.extra_anchor_images) >= MAX_EXTRA_ANCHORS:
            raise ValueError(f"At most {MAX_EXTRA_ANCHORS} extra anchor images are allowed")
        extras = [*meta.extra_anchor_images, to_data_url(data, mime_type)]
        self._patch_metadata(scene_id, extra_anchor_images=extras)
        return len(extras)

    def remove_extra_anchor(self, scene_id: str, index: int) -> None:
        meta = self.require_scene(scene_id).metadata or SceneMetadata()
        if not 0 <= index < len(meta.extra_anchor_images):
            raise IndexError(f"No extra anchor at {index}")
        extras = [u for i, u in enumerate(meta.extra_anchor_images) if i != index]
        self._patch_metadata(scene_id, extra_anchor_images=extras)

    # -- shot images --------------------------------------------------------

    async def _render_shot(self, scene_id: str, shot: Shot, meta: SceneMetadata | None) -> None:
        p = self.project
        try:
            result = await imagegen.generate_shot_image(
                self.adapter, shot, meta, p.assets, p.settings, p.continuity, self._retry
            )
        except Exception as e:
            self._patch_shot(scene_id, shot.id, loading=False)
            if is_critical(e):
                raise
            log.warning("Shot %s image failed: %s", shot.id, e)
            self.handle_api_error(e)
            self._patch_shot(scene_id, shot.id, error=user_message(e))
            return
        self._patch_shot(
            scene_id, shot.id,
            image_url=result.url,
            generation_prompt=result.prompt,
            loading=False,
            error=None if result.url else "No image returned",
        )

    async def generate_shot_image(self, scene_id: str, shot_id: str) -> Shot:
        shot = self.require_shot(scene_id, shot_id)
        self._patch_shot(scene_id, shot_id, loading=True, error=None)
        meta = self.require_scene(scene_id).metadata
        with self._reporting("Shot image"):
            await self._render_shot(scene_id, shot, meta)
        return self.require_shot(scene_id, shot_id)

    async def visualize_scene(self, scene_id: str) -> Scene:
        """Render anchors, then every shot image in batches.

        A failed shot keeps its error and the rest of the scene continues;
        credential failures abort the pass.
        """
        scene = self.require_scene(scene_id)
        self._set_scenes(storyboard.update_scene(
            self.project.scenes, scene_id,
            lambda s: s.model_copy(update={
                "loading": True,
                "error": None,
                "shots": [sh.model_copy(update={"loading": True}) for sh in s.shots],
            }),
        ))
        label = scene.kind.value if scene.kind is not SceneKind.STORY else f"scene {scene.scene_index}"
        self.progress_cb(f"🖼️ Visualizing {label}...")

        with self._reporting("Scene visualization"):
            try:
                meta = scene.metadata
                if meta is not None:
                    meta = await self.generate_scene_anchors(scene_id)
                shots = self.require_scene(scene_id).shots
                for start in range(0, len(shots), IMAGE_BATCH_SIZE):
                    if start:
                        await self._pause(BATCH_PAUSE)
                    batch = shots[start:start + IMAGE_BATCH_SIZE]
                    await asyncio.gather(*(self._render_shot(scene_id, shot, meta) for shot in batch))
            except Exception as e:
                self._set_scenes(storyboard.update_scene(
                    self.project.scenes, scene_id,
                    lambda s: s.model_copy(update={
                        "loading": False,
                        "error": user_message(e),
                        "shots": [sh.model_copy(update={"loading": False}) for sh in s.shots],
                    }),
                ))
                raise

        self._patch_scene(scene_id, visualized=True, loading=False)
        return self.require_scene(scene_id)

    async def reshoot_scene(self, scene_id: str) -> Scene:
        """Drop every rendered frame and clip of the scene and render it again."""
        self._set_scenes(storyboard.update_scene(self.project.scenes, scene_id, storyboard.clear_for_reshoot))
        return await self.visualize_scene(scene_id)

    async def generate_last_frame(self, scene_id: str, shot_id: str) -> Shot:
        shot = self.require_shot(scene_id, shot_id)
        if not shot.image_url:
            raise ValueError(f"Shot {shot_id} has no start frame")
        settings = self.project.settings
        self._patch_shot(scene_id, shot_id, loading=True, error=None)
        with self._reporting("End frame"):
            try:
                start = InlineImage.from_data_url(shot.image_url)
                end_state = await self._retry(lambda: self.adapter.generate_text(
                    [start, scriptgen.build_end_frame_prompt(shot, settings)]
                ))
                result = await imagegen.generate_last_frame(
                    self.adapter, shot, end_state.strip(), settings, self._retry
                )
            finally:
                self._patch_shot(scene_id, shot_id, loading=False)
        if result.url:
            self._patch_shot(scene_id, shot_id, last_frame_url=result.url)
        return self.require_shot(scene_id, shot_id)

    # -- script editing -----------------------------------------------------

    async def rewrite_scene(self, scene_id: str) -> Scene:
        scene = self.require_scene(scene_id)
        p = self.project
        prompt = scriptgen.build_rewrite_prompt(scene, p.settings, p.assets, p.continuity)
        self._patch_scene(scene_id, loading=True, error=None)
        with self._reporting("Scene rewrite"):
            try:
                data = await scriptgen.request_json(self.adapter, prompt, self._retry)
                self._set_scenes(storyboard.update_scene(
                    self.project.scenes, scene_id, lambda s: scriptgen.rewritten_scene(s, data)
                ))
            except Exception as e:
                self._patch_scene(scene_id, loading=False, error=user_message(e))
                raise
        return self.require_scene(scene_id)

    async def insert_shot(self, scene_id: str, after_shot_id: str) -> Shot:
        """Write and render a bridging shot right after *after_shot_id*."""
        scene = self.require_scene(scene_id)
        pos = next((i for i, s in enumerate(scene.shots) if s.id == after_shot_id), None)
        if pos is None:
            raise KeyError(f"Unknown shot {after_shot_id} in scene {scene_id}")
        prev_shot = scene.shots[pos]
        next_shot = scene.shots[pos + 1] if pos + 1 < len(scene.shots) else None

        placeholder = Shot(visual_description=INSERT_SHOT_PLACEHOLDER, loading=True)
        self._set_scenes(storyboard.insert_shot_after(self.project.scenes, scene_id, after_shot_id, placeholder))

        p = self.project
        prompt = scriptgen.build_insert_shot_prompt(scene, prev_shot, next_shot, p.settings, p.assets, p.continuity)
        with self._reporting("Shot insertion"):
            try:
                data = await scriptgen.request_json(self.adapter, prompt, self._retry)
            except Exception:
                self._set_scenes(storyboard.remove_shot(self.project.scenes, scene_id, placeholder.id))
                raise

        fallback = Shot(
            visual_description=INSERT_SHOT_FALLBACK,
            focus_character_ref=prev_shot.focus_character_ref,
            lighting=prev_shot.lighting,
        )
        filled = scriptgen.shot_from_payload(data, 0, fallback=fallback)
        self._patch_shot(
            scene_id, placeholder.id,
            visual_description=filled.visual_description,
            dialogue=filled.dialogue,
            focus_character_ref=filled.focus_character_ref,
            camera=filled.camera,
            lighting=filled.lighting,
            sound_fx=filled.sound_fx,
        )
        shot = self.require_shot(scene_id, placeholder.id)
        with self._reporting("Shot image"):
            await self._render_shot(scene_id, shot, self.require_scene(scene_id).metadata)
        return self.require_shot(scene_id, placeholder.id)

    def remove_shot(self, scene_id: str, shot_id: str) -> None:
        self.require_shot(scene_id, shot_id)
        self._set_scenes(storyboard.remove_shot(self.project.scenes, scene_id, shot_id))

    async def insert_scene(self, after_scene_id: str) -> Scene:
        """Write a bridging scene after *after_scene_id*.

        The new scene inherits the previous costume rule and costume anchor,
        and sees the previous scene's closing frame when one exists.
        """
        scenes = self.project.scenes
        pos = next((i for i, s in enumerate(scenes) if s.id == after_scene_id), None)
        if pos is None:
            raise KeyError(f"Unknown scene {after_scene_id}")
        prev_scene = scenes[pos]
        next_scene = scenes[pos + 1] if pos + 1 < len(scenes) else None
        prev_meta = prev_scene.metadata or SceneMetadata()

        inherited = SceneMetadata(
            setting="New Scene",
            lighting="Cinematic",
            costume_rule=prev_meta.costume_rule or "Consistent",
            mood="Neutral",
            anchor_costume_image=prev_meta.anchor_costume_image,
        )
        new_scene = Scene(kind=SceneKind.STORY, metadata=inherited, loading=True)
        self._set_scenes(storyboard.renumber_scenes(
            storyboard.insert_scene_after(self.project.scenes, after_scene_id, new_scene)
        ))

        p = self.project
        prompt = scriptgen.build_insert_scene_prompt(prev_scene, next_scene, p.settings, p.assets, p.continuity)
        last = prev_scene.shots[-1] if prev_scene.shots else None
        prev_image = (last.last_frame_url or last.image_url) if last else None
        contents: list = [prompt]
        if prev_image and prev_image.startswith("data:"):
            contents = [scriptgen.PREV_SCENE_IMAGE_NOTE, InlineImage.from_data_url(prev_image), prompt]

        with self._reporting("Scene insertion"):
            try:
                data = await scriptgen.request_json(self.adapter, contents, self._retry)
                payloads = scriptgen.shot_payloads(data.get("shots"))[:scriptgen.MAX_SHOTS]
                if not payloads:
                    raise ResponseParseError("Failed to parse AI response: inserted scene has no shots")
            except Exception:
                self._set_scenes(storyboard.renumber_scenes(
                    storyboard.remove_scene(self.project.scenes, new_scene.id)
                ))
                raise

        meta = scriptgen.metadata_from_payload(data.get("metadata"), inherited)
        self._patch_scene(
            new_scene.id,
            metadata=meta,
            shots=[scriptgen.shot_from_payload(sp, i) for i, sp in enumerate(payloads)],
            loading=False,
        )
        return self.require_scene(new_scene.id)

    def delete_scene(self, scene_id: str) -> None:
        self.require_scene(scene_id)
        self._set_scenes(storyboard.renumber_scenes(storyboard.remove_scene(self.project.scenes, scene_id)))

    def update_shot(self, scene_id: str, shot_id: str, **fields: Any) -> Shot:
        unknown = set(fields) - EDITABLE_SHOT_FIELDS
        if unknown:
            raise ValueError(f"Shot fields not editable: {', '.join(sorted(unknown))}")
        self.require_shot(scene_id, shot_id)
        self._patch_shot(scene_id, shot_id, **fields)
        return self.require_shot(scene_id, shot_id)

    def update_scene_metadata(self, scene_id: str, **fields: Any) -> SceneMetadata:
        unknown = set(fields) - EDITABLE_METADATA_FIELDS
        if unknown:
            raise ValueError(f"Scene fields not editable: {', '.join(sorted(unknown))}")
        self.require_scene(scene_id)
        self._patch_metadata(scene_id, **fields)
        return self.require_scene(scene_id).metadata

    def toggle_shot_audio(self, scene_id: str, shot_id: str) -> bool:
        shot = self.require_shot(scene_id, shot_id)
        self._patch_shot(scene_id, shot_id, audio_enabled=not shot.audio_enabled)
        return not shot.audio_enabled

    def clear_shot_image(self, scene_id: str, shot_id: str, which: str = "start") -> Shot:
        self.require_shot(scene_id, shot_id)
        self._set_scenes(storyboard.update_shot(
            self.project.scenes, scene_id, shot_id, lambda s: storyboard.clear_shot_image(s, which)
        ))
        return self.require_shot(scene_id, shot_id)

    # -- video --------------------------------------------------------------

    async def generate_shot_video(
        self,
        scene_id: str,
        shot_id: str,
        cancel: CancelToken | None = None,
    ) -> Shot:
        """Animate a shot from its start (and optional end) frame."""
        shot = self.require_shot(scene_id, shot_id)
        if not shot.image_url:
            raise ValueError(f"Shot {shot_id} has no start frame")
        settings = self.project.settings
        token = cancel or CancelToken()
        self._video_tokens[shot_id] = token
        self._patch_shot(scene_id, shot_id, video_status=VideoStatus.GENERATING, error=None)

        def on_state(state: PollState, job) -> None:
            if state in (PollState.SUBMITTED, PollState.DONE, PollState.FAILED, PollState.TIMED_OUT):
                self.progress_cb(f"🎬 Shot {shot.index + 1} video: {state.value}")

        poller = VideoJobPoller(self.adapter, self.blob_store, self._retry, sleep=self._sleep)
        end = InlineImage.from_data_url(shot.last_frame_url) if shot.last_frame_url else None
        with self._reporting("Video generation"):
            try:
                url = await poller.run(
                    shot.visual_description,
                    InlineImage.from_data_url(shot.image_url),
                    end,
                    aspect_ratio=settings.video_aspect_ratio,
                    model=settings.video_model,
                    blob_key=f"{scene_id}-{shot_id}",
                    cancel=token,
                    on_state=on_state,
                )
            except GenerationCancelled:
                self._patch_shot(scene_id, shot_id, video_status=VideoStatus.IDLE)
                raise
            except Exception as e:
                self._patch_shot(scene_id, shot_id, video_status=VideoStatus.ERROR, error=user_message(e))
                raise
            finally:
                self._video_tokens.pop(shot_id, None)

        self._patch_shot(scene_id, shot_id, video_url=url, video_status=VideoStatus.DONE, audio_enabled=False)
        return self.require_shot(scene_id, shot_id)

    def cancel_shot_video(self, shot_id: str) -> bool:
        token = self._video_tokens.get(shot_id)
        if token is None:
            return False
        token.cancel()
        return True

    def shot_video_bytes(self, scene_id: str, shot_id: str) -> bytes:
        """Stored clip of a finished shot."""
        shot = self.require_shot(scene_id, shot_id)
        if not shot.video_url:
            raise KeyError(f"Shot {shot_id} has no video")
        return self.blob_store.get(shot.video_url)

    # -- assistants ---------------------------------------------------------

    async def recommend_config(self) -> ProjectSettings:
        """Ask the model for a random but coherent project setup and apply it."""
        with self._reporting("Recommendation"):
            data = await scriptgen.request_json(self.adapter, scriptgen.build_recommend_prompt(), self._retry)
        changes: dict[str, Any] = {}
        for key, field in (("genre", "genre"), ("director", "director_style"), ("artStyle", "art_style"),
                           ("refWork", "work_style"), ("premise", "premise"), ("language", "language")):
            if isinstance(data.get(key), str) and data[key].strip():
                changes[field] = data[key].strip()
        if data.get("aspectRatio") in RATIO_TO_SIZE:
            changes["aspect_ratio"] = data["aspectRatio"]
        if isinstance(data.get("pageCount"), int) and data["pageCount"] > 0:
            changes["page_count"] = data["pageCount"]
        return self.update_settings(**changes)

    async def inspire_options(self, kind: str) -> list[str]:
        prompt = scriptgen.build_inspire_prompt(kind, self.project.settings.genre)
        with self._reporting("Inspiration"):
            data = await scriptgen.request_json(self.adapter, prompt, self._retry)
        options = data.get("options")
        if not isinstance(options, list):
            return []
        return [str(o).strip() for o in options if str(o).strip()]

    async def inspire_premise(self) -> str:
        prompt = scriptgen.build_premise_prompt(self.project.settings)
        with self._reporting("Premise"):
            data = await scriptgen.request_json(self.adapter, prompt, self._retry)
        premise = str(data.get("premise") or "").strip()
        if premise:
            self.update_settings(premise=premise)
        return premise

    # -- soundtrack ---------------------------------------------------------

    async def suggest_music(self, lyric_language: str = "zh") -> MusicRequest:
        prompt = scriptgen.build_music_prompt(self.project.settings, lyric_language)
        with self._reporting("Music suggestion"):
            data = await scriptgen.request_json(self.adapter, prompt, self._retry)
        return MusicRequest(
            title=str(data.get("title") or ""),
            tags=str(data.get("tags") or data.get("style") or ""),
            lyrics=str(data.get("lyrics") or ""),
        )

    async def generate_music(
        self,
        request: MusicRequest,
        api_key: str | None = None,
        base_url: str | None = None,
    ) -> AudioTrack:
        """Generate the soundtrack. Starting a new one abandons the previous."""
        if self._music_token is not None:
            self._music_token.cancel()
        token = self._music_token = CancelToken()

        client = self.music_client
        owned = client is None or bool(api_key or base_url)
        if owned:
            client = SunoClient(
                api_key or self.config.require("music"),
                base_url or self.config.music_base_url,
            )

        def on_update(track: AudioTrack) -> None:
            if not token.cancelled:
                self._set(audio_track=track)

        with self._reporting("Music generation"):
            try:
                track = await generate_soundtrack(
                    client, request, on_update, cancel=token, sleep=self._sleep or asyncio.sleep
                )
            except GenerationCancelled:
                raise
            except Exception as e:
                if not token.cancelled:
                    failed = (self.project.audio_track or AudioTrack(title=request.title))
                    self._set(audio_track=failed.model_copy(update={"loading": False, "error": user_message(e)}))
                raise
            finally:
                if self._music_token is token:
                    self._music_token = None
                if owned:
                    await client.aclose()
        return track
