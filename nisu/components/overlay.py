"""
Overlay icon and status bubble injected into the notebook page.

Clicking either calls the page binding exposed by the runner, which is the
study session's trigger.
"""
from playwright.sync_api import Page

from nisu.components.media import BUBBLE_ID

OVERLAY_ID = "nisu-extension-overlay"

_INSTALL_JS = """
({overlayId, bubbleId, binding, text}) => {
    if (!document.body || document.getElementById(overlayId)) return false;

    const icon = document.createElement("div");
    icon.id = overlayId;
    icon.innerText = "NISU";
    Object.assign(icon.style, {
        position: "fixed", bottom: "20px", right: "20px", width: "100px", height: "100px",
        borderRadius: "50%", background: "#4a6cf7", color: "#fff", display: "flex",
        alignItems: "center", justifyContent: "center", cursor: "pointer",
        fontFamily: "Arial, sans-serif", fontWeight: "bold", zIndex: "10000",
    });

    const bubble = document.createElement("div");
    bubble.id = bubbleId;
    bubble.innerText = text;
    Object.assign(bubble.style, {
        position: "fixed", bottom: "130px", right: "20px", background: "#fff",
        padding: "10px", borderRadius: "10px", boxShadow: "0px 0px 10px rgba(0, 0, 0, 0.1)",
        zIndex: "10001", fontFamily: "Arial, sans-serif", fontSize: "14px",
        color: "black", cursor: "pointer",
    });

    const trigger = () => window[binding] && window[binding]();
    icon.addEventListener("click", trigger);
    bubble.addEventListener("click", trigger);
    document.body.appendChild(icon);
    document.body.appendChild(bubble);
    return true;
}
"""

_SET_TEXT_JS = """
({bubbleId, text}) => {
    const bubble = document.getElementById(bubbleId);
    if (bubble) bubble.innerText = text;
}
"""


def install_overlay(page: Page, binding_name: str, text: str) -> bool:
    """Inject the overlay once per document. Returns False if it was already there."""
    return page.evaluate(_INSTALL_JS, {
        "overlayId": OVERLAY_ID,
        "bubbleId": BUBBLE_ID,
        "binding": binding_name,
        "text": text,
    })


def set_bubble_text(page: Page, text: str) -> None:
    page.evaluate(_SET_TEXT_JS, {"bubbleId": BUBBLE_ID, "text": text})
