#!/usr/bin/env python3
"""
Utilitário para iniciar a API do DocStacker a partir da raiz do repositório.
"""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).parent.resolve()
BACKEND_DIR = ROOT_DIR / "backend"


def start_backend(host: str, port: int, reload: bool = False) -> subprocess.Popen[bytes]:
    if not BACKEND_DIR.exists():
        raise FileNotFoundError("Diretório backend não encontrado.")

    env = os.environ.copy()
    env.setdefault("PYTHONPATH", str(BACKEND_DIR))

    cmd = [
        sys.executable,
        "-m",
        "uvicorn",
        "app.main:create_app",
        "--factory",
        "--host",
        host,
        "--port",
        str(port),
    ]
    if reload:
        cmd.append("--reload")
    print(f"[>] Executando: {' '.join(cmd)} (cwd={BACKEND_DIR})")
    print(f"[i] Iniciando backend (FastAPI em http://{host}:{port})…")
    return subprocess.Popen(cmd, cwd=str(BACKEND_DIR), env=env)


def main() -> None:
    parser = argparse.ArgumentParser(description="DocStacker - Starter")
    parser.add_argument("--host", default=os.getenv("DOCSTACKER_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("DOCSTACKER_PORT", "8000")))
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args()

    proc = start_backend(args.host, args.port, args.reload)
    try:
        proc.wait()
    except KeyboardInterrupt:
        print("\n[i] Backend interrompido.")
    finally:
        if proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=10)
            except subprocess.TimeoutExpired:
                proc.kill()


if __name__ == "__main__":
    main()
