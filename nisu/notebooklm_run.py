"""
Run the study assistant on NotebookLM.
"""
import argparse
import logging

from nisu.base_config.notebooklm_config import NotebookLMConfig


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    """Main entry point for the NotebookLM assistant."""
    from nisu.components.base import create_assistant

    parser = argparse.ArgumentParser(description="Run NISU playlists on NotebookLM.")
    parser.add_argument("--api-base", help="backend base URL")
    parser.add_argument("--dev", action="store_true", help="guess the notebook when the URL has none")
    parser.add_argument("--logout", action="store_true", help="forget the stored session and exit")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    configure_logging(args.verbose)

    overrides = {"dev_fallback": args.dev}
    if args.api_base:
        overrides["api_base"] = args.api_base
    cfg = NotebookLMConfig(**overrides)

    assistant = create_assistant(cfg)
    if args.logout:
        assistant.sessions.logout()
        print("✓ Signed out")
        return
    assistant.run()


if __name__ == "__main__":
    main()
