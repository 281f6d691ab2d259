import sys
from pathlib import Path

import requests
from tqdm import tqdm

from vtwoods.config import ChatConfig, settings
from vtwoods.ops.http import post_json
from vtwoods.ops.logging import log_event


def find_pdfs(folder: Path) -> list[Path]:
    return sorted(p for p in folder.iterdir() if p.is_file() and p.suffix.lower() == ".pdf")


def upload_file(config: ChatConfig, path: Path) -> str:
    with path.open("rb") as fh:
        r = requests.post(
            f"{config.base_url}/files",
            headers={"Authorization": f"Bearer {config.api_key}"},
            data={"purpose": "assistants"},
            files={"file": (path.name, fh, "application/pdf")},
            timeout=max(config.timeout_sec, 300),
        )
    r.raise_for_status()
    return r.json()["id"]


def attach_file(config: ChatConfig, file_id: str) -> None:
    r = post_json(
        f"{config.base_url}/vector_stores/{config.vector_store_id}/files",
        payload={"file_id": file_id},
        timeout=config.timeout_sec,
        headers={"Authorization": f"Bearer {config.api_key}"},
    )
    r.raise_for_status()


def upload_folder(config: ChatConfig, folder: Path) -> int:
    pdfs = find_pdfs(folder)
    for path in tqdm(pdfs, desc="Uploading to vector store"):
        file_id = upload_file(config, path)
        attach_file(config, file_id)
        log_event({"type": "document_attached", "file": path.name, "file_id": file_id})
    return len(pdfs)


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    folder = Path(args[0] if args else settings.DOCS_DIR)
    config = ChatConfig.from_settings(settings)

    missing = config.missing_fields()
    if missing:
        print(f"Set {', '.join(missing)} before uploading.")
        return 1
    if not folder.is_dir():
        print(f"PDF folder not found: {folder}")
        return 1
    if not find_pdfs(folder):
        print(f"No PDF files found in: {folder}")
        return 1

    print(f"Using vector store: {config.vector_store_id}")
    try:
        count = upload_folder(config, folder)
    except (requests.exceptions.RequestException, KeyError, ValueError) as exc:
        print(f"Upload failed: {exc}")
        return 1

    print(f"OK: Attached {count} PDFs to '{config.vector_store_id}'")
    return 0


if __name__ == "__main__":
    sys.exit(main())
