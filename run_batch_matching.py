import argparse
import csv
import json
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

from src.models.weights import WeightConfig
from src.models.user import UserProfile
from src.models.project import ProjectRequirements
from src.orchestrator import MatchingOrchestrator, can_request_to_join, score_band
from src.services.llm_service import LLMService
from src.services.skill_taxonomy import SkillTaxonomy


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json_dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _load_records(path: Path) -> List[Dict[str, Any]]:
    """Legge un file JSON con una lista di oggetti (o {"items": [...]})."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("items", [])
    if not isinstance(data, list):
        raise SystemExit(f"Formato non valido in {path}: attesa una lista di oggetti")
    return [d for d in data if isinstance(d, dict)]


def _existing_pairs(csv_path: Path) -> set[Tuple[str, str]]:
    if not csv_path.exists():
        return set()
    try:
        with csv_path.open("r", encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            return {
                (row.get("user_id", "") or "", row.get("project_id", "") or "")
                for row in reader
                if row
            }
    except (OSError, csv.Error):
        return set()


FIELDNAMES = [
    "run_id",
    "timestamp_utc",
    "user_id",
    "user_name",
    "project_id",
    "project_title",
    "llm_provider",
    "llm_model",
    "timeout",
    "n_user_skills",
    "n_project_skills",
    "final_score",
    "base_score",
    "semantic_status",
    "score_band",
    "can_join",
    "exact_score",
    "related_score",
    "category_score",
    "project_relevance_score",
    "matched_skills_json",
    "missing_skills_json",
    "exact_matches_json",
    "related_matches_json",
    "category_matches_json",
    "recommendations_json",
    "analysis",
    "elapsed_ms",
    "error",
]


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Calcola il match per tutte le combinazioni utente x progetto e salva un CSV "
            "con score, breakdown e raccomandazioni."
        )
    )
    parser.add_argument("--users", default="data/users.json", help="File JSON con i profili utente.")
    parser.add_argument("--projects", default="data/projects.json", help="File JSON con i progetti.")
    parser.add_argument("--out", default="data/results/batch_matches.csv", help="Percorso output CSV.")
    parser.add_argument("--limit", type=int, default=0, help="Se > 0, limita il numero di coppie processate.")
    parser.add_argument("--skip-existing", action="store_true", help="Salta coppie già presenti nel CSV output.")
    parser.add_argument("--skip-owner", action=argparse.BooleanOptionalAction, default=True, help="Non calcola il match del proprietario con il proprio progetto.")
    parser.add_argument("--verbose", action="store_true", help="Abilita log verbose dell'orchestrator.")

    parser.add_argument("--relationships-csv", default=None, help="CSV relazioni skill (colonne: skill, related).")
    parser.add_argument("--categories-csv", default=None, help="CSV categorie skill (colonne: category, skills).")
    parser.add_argument("--weight-exact", type=float, default=1.0)
    parser.add_argument("--weight-related", type=float, default=0.5)
    parser.add_argument("--weight-experience", type=float, default=0.3)
    parser.add_argument("--weight-category", type=float, default=0.4)
    parser.add_argument("--weight-project-relevance", type=float, default=0.6)

    parser.add_argument("--llm-provider", choices=["ollama", "lmstudio"], default=os.getenv("LLM_PROVIDER", "lmstudio"))
    parser.add_argument("--ollama-model", default=os.getenv("OLLAMA_MODEL", "llama3.2"))
    parser.add_argument("--lmstudio-model", default=os.getenv("LMSTUDIO_MODEL", "meta-llama-3.1-8b-instruct"))
    parser.add_argument("--lmstudio-base-url", default=os.getenv("LMSTUDIO_BASE_URL", "http://localhost:1234/v1"))
    parser.add_argument("--lmstudio-api-key", default=os.getenv("LMSTUDIO_API_KEY", "lmstudio"))
    parser.add_argument("--temperature", type=float, default=0.3)
    parser.add_argument("--timeout", type=int, default=30)

    args = parser.parse_args(argv)

    if bool(args.relationships_csv) != bool(args.categories_csv):
        parser.error("--relationships-csv e --categories-csv vanno indicati insieme")

    users_path = Path(args.users).resolve()
    projects_path = Path(args.projects).resolve()
    out_path = Path(args.out).resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)

    users = [UserProfile(**record) for record in _load_records(users_path)]
    projects = [ProjectRequirements(**record) for record in _load_records(projects_path)]

    if not users:
        raise SystemExit(f"Nessun utente trovato in: {users_path}")
    if not projects:
        raise SystemExit(f"Nessun progetto trovato in: {projects_path}")

    existing = _existing_pairs(out_path) if args.skip_existing else set()

    llm_service = LLMService(
        provider=args.llm_provider,
        model=args.ollama_model,
        lmstudio_model=args.lmstudio_model,
        lmstudio_base_url=args.lmstudio_base_url,
        lmstudio_api_key=args.lmstudio_api_key,
        temperature=args.temperature,
        timeout=args.timeout,
    )

    if args.relationships_csv:
        taxonomy = SkillTaxonomy.from_csv(args.relationships_csv, args.categories_csv)
    else:
        taxonomy = SkillTaxonomy.default()

    weights = WeightConfig(
        exact=args.weight_exact,
        related=args.weight_related,
        experience=args.weight_experience,
        category=args.weight_category,
        project_relevance=args.weight_project_relevance,
    )

    orchestrator = MatchingOrchestrator(
        llm_service=llm_service,
        taxonomy=taxonomy,
        weights=weights,
        verbose=args.verbose,
    )

    write_header = not out_path.exists()
    processed = 0

    with out_path.open("a", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        if write_header:
            writer.writeheader()

        for project in projects:
            for user in users:
                if args.limit and processed >= args.limit:
                    break

                user_id = user.user_id or ""
                project_id = project.project_id or ""
                if (user_id, project_id) in existing:
                    continue
                if args.skip_owner and project.owner_id and user_id == project.owner_id:
                    continue

                started = time.perf_counter()
                row: Dict[str, Any] = {key: "" for key in FIELDNAMES}
                row.update({
                    "run_id": f"{project_id}__{user_id}__{int(time.time())}",
                    "timestamp_utc": _utc_now_iso(),
                    "user_id": user_id,
                    "user_name": user.name or "",
                    "project_id": project_id,
                    "project_title": project.title or "",
                    "llm_provider": llm_service.provider,
                    "llm_model": llm_service.model,
                    "timeout": int(args.timeout),
                    "n_user_skills": len(user.skills),
                    "n_project_skills": len(project.required_skills),
                })

                try:
                    match = orchestrator.match(user, project)

                    row["final_score"] = match.score
                    row["base_score"] = match.base_score
                    row["semantic_status"] = match.semantic_status
                    row["score_band"] = score_band(match.score)
                    row["can_join"] = can_request_to_join(match)

                    details = match.match_details
                    row["exact_score"] = details.exact_score
                    row["related_score"] = details.related_score
                    row["category_score"] = details.category_score
                    row["project_relevance_score"] = details.project_relevance_score

                    breakdown = match.skill_breakdown
                    row["matched_skills_json"] = _json_dumps(match.matched_skills)
                    row["missing_skills_json"] = _json_dumps(match.missing_skills)
                    row["exact_matches_json"] = _json_dumps(breakdown.exact_matches)
                    row["related_matches_json"] = _json_dumps(breakdown.related_matches)
                    row["category_matches_json"] = _json_dumps(breakdown.category_matches)
                    row["recommendations_json"] = _json_dumps(match.recommendations)
                    row["analysis"] = match.analysis
                except Exception as e:
                    row["error"] = f"{type(e).__name__}: {e}"
                finally:
                    row["elapsed_ms"] = int((time.perf_counter() - started) * 1000)
                    writer.writerow(row)
                    f.flush()
                    processed += 1
                    pair_label = f"{user_id or user.name} x {project_id or project.title}"
                    if row["error"]:
                        print(f"  [{processed}] ERRORE {pair_label}: {row['error']}")
                    else:
                        print(f"  [{processed}] OK {pair_label} -> score={row['final_score']} ({row['semantic_status']})")

    _print_summary(out_path)
    return 0


def _safe_float(row: Dict[str, Any], key: str, default: float = 0.0) -> float:
    try:
        return float(row[key])
    except (ValueError, KeyError, TypeError):
        return default


def _median(values: List[float]) -> float:
    if not values:
        return 0.0
    s = sorted(values)
    n = len(s)
    if n % 2 == 1:
        return s[n // 2]
    return (s[n // 2 - 1] + s[n // 2]) / 2


def _print_summary(csv_path: Path) -> None:
    """Stampa un riepilogo dei risultati presenti nel CSV."""
    if not csv_path.exists():
        return
    with csv_path.open("r", encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))

    if not rows:
        print("\nNessun risultato nel CSV.")
        return

    ok_rows = [r for r in rows if not r.get("error")]
    scores = [_safe_float(r, "final_score") for r in ok_rows]

    bands = {"strong": 0, "moderate": 0, "weak": 0}
    statuses: Dict[str, int] = {}
    for r in ok_rows:
        band = r.get("score_band", "")
        if band in bands:
            bands[band] += 1
        status = r.get("semantic_status", "")
        statuses[status] = statuses.get(status, 0) + 1

    print("\n" + "=" * 70)
    print("  SUMMARY – Batch Matching Results")
    print("=" * 70)
    print(f"  Coppie: {len(rows)} totali ({len(ok_rows)} OK, {len(rows) - len(ok_rows)} errori)")
    if scores:
        print(f"  Score: media={sum(scores)/len(scores):.1f}  mediana={_median(scores):.1f}  "
              f"min={min(scores):.0f}  max={max(scores):.0f}")
        print(f"  Fasce: {bands}")
        print(f"  Analisi semantica: {statuses}")
    print(f"  Output CSV: {csv_path}")
    print("=" * 70)


if __name__ == "__main__":
    raise SystemExit(main())
