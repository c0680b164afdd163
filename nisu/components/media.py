"""
Media tasks: turn a shared link into something embeddable and show it.
"""
from urllib.parse import parse_qs, urlparse

from playwright.sync_api import Page

from nisu.components.utils import ensure_scheme

MEDIA_BUBBLE_ID = "nisu-extension-mediaBubble"
BUBBLE_ID = "nisu-extension-bubble"


def _on_host(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def _last_segment(path: str) -> str:
    segments = [s for s in path.split("/") if s]
    return segments[-1] if segments else ""


def transform_media_url(payload: str) -> str:
    """
    Map a media link to its embeddable form.

    - youtube.com/watch?v=ID, youtu.be/ID -> https://www.youtube.com/embed/ID
    - vimeo.com/ID -> https://player.vimeo.com/video/ID
    - drive.google.com/.../d/FILEID/... -> direct download for .wav, preview otherwise
    - anything else unchanged (after adding a missing scheme)

    Already embeddable URLs map to themselves.
    """
    url = ensure_scheme(payload)
    parsed = urlparse(url)
    host = parsed.netloc.lower()

    if _on_host(host, "youtube.com") and parsed.path == "/watch":
        video_id = parse_qs(parsed.query).get("v", [""])[0]
        if video_id:
            return "https://www.youtube.com/embed/" + video_id
    elif _on_host(host, "youtu.be"):
        video_id = _last_segment(parsed.path)
        if video_id:
            return "https://www.youtube.com/embed/" + video_id
    elif _on_host(host, "vimeo.com"):
        video_id = _last_segment(parsed.path)
        if video_id:
            return "https://player.vimeo.com/video/" + video_id
    elif host == "drive.google.com":
        parts = parsed.path.split("/")
        if "d" in parts:
            index = parts.index("d")
            if index + 1 < len(parts) and parts[index + 1]:
                file_id = parts[index + 1]
                if ".wav" in url.lower():
                    return "https://drive.google.com/uc?export=download&id=" + file_id
                return "https://drive.google.com/file/d/" + file_id + "/preview"
    return url


def is_audio_url(url: str) -> bool:
    """True for .wav media (case-insensitive)."""
    lowered = url.lower()
    return urlparse(lowered).path.endswith(".wav") or (
        "drive.google.com" in lowered and ".wav" in lowered
    )


_SHOW_MEDIA_JS = """
({url, audio, bubbleId, mediaId}) => {
    const talk = document.getElementById(bubbleId);
    if (talk) talk.style.display = "none";

    let media = document.getElementById(mediaId);
    if (!media) {
        media = document.createElement("div");
        media.id = mediaId;
        Object.assign(media.style, {
            position: "fixed", right: "20px", bottom: "140px", background: "#fff",
            borderRadius: "15px", boxShadow: "0px 0px 15px rgba(0, 0, 0, 0.3)",
            padding: "35px 15px 15px 15px", zIndex: "10002",
        });
        const close = document.createElement("button");
        close.innerText = "Close";
        close.id = "nisu-media-close-btn";
        Object.assign(close.style, {position: "absolute", top: "5px", right: "5px", zIndex: "10003"});
        close.addEventListener("click", () => {
            media.remove();
            const bubble = document.getElementById(bubbleId);
            if (bubble) bubble.style.display = "block";
        });
        media.appendChild(close);
        document.body.appendChild(media);
    } else {
        Array.from(media.children)
            .filter(child => child.id !== "nisu-media-close-btn")
            .forEach(child => media.removeChild(child));
    }
    media.style.width = audio ? "300px" : "480px";
    media.style.height = audio ? "125px" : "300px";

    if (audio) {
        const player = document.createElement("audio");
        player.src = url;
        player.controls = true;
        player.style.width = "100%";
        player.playbackRate = 1.0;
        media.appendChild(player);

        const speed = document.createElement("button");
        speed.innerText = "Speed: 1x";
        speed.style.marginTop = "5px";
        speed.addEventListener("click", () => {
            player.playbackRate = player.playbackRate === 1.0 ? 0.8 : 1.0;
            speed.innerText = player.playbackRate === 1.0 ? "Speed: 1x" : "Speed: 0.8x";
        });
        media.appendChild(speed);
    } else {
        const frame = document.createElement("iframe");
        frame.src = url;
        Object.assign(frame.style, {width: "100%", height: "100%", border: "none"});
        media.appendChild(frame);
    }
}
"""


def show_media_player(page: Page, url: str, audio: bool) -> None:
    """Show the floating media bubble (audio player with speed toggle, or iframe)."""
    page.evaluate(_SHOW_MEDIA_JS, {
        "url": url,
        "audio": audio,
        "bubbleId": BUBBLE_ID,
        "mediaId": MEDIA_BUBBLE_ID,
    })
