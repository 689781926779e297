from flask import render_template, request, jsonify, send_file, make_response, current_app

from betaboard.models.feedback import TYPE_LABELS
from betaboard.services.kanban_import import (
    ImportedBoard,
    CsvImportError,
    parse_feedback_csv,
    sample_csv,
    export_workbook,
    SAMPLE_FILENAME,
    EXPORT_FILENAME,
)
from . import bp


@bp.get("/kanban/import")
def kanban_import_index():
    return render_template("admin/kanban_import.html", type_labels=TYPE_LABELS)


@bp.post("/kanban/import")
def kanban_import_upload():
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return jsonify({"ok": False, "error": "Please select a valid CSV file."}), 400

    try:
        text = upload.read().decode("utf-8-sig")
    except UnicodeDecodeError:
        return jsonify({"ok": False, "error": "Error parsing CSV file. Please check the format and try again."}), 400

    try:
        rows = parse_feedback_csv(upload.filename, upload.mimetype, text)
    except CsvImportError as e:
        return jsonify({"ok": False, "error": str(e)}), 400

    current_app.logger.info("kanban_import", extra={"event": "kanban_import", "rows": len(rows)})
    return jsonify({"ok": True, **ImportedBoard(items=rows).to_dict()})


@bp.post("/kanban/import/board")
def kanban_import_board():
    """Apply one action to the posted board state and hand back the new state."""
    data = request.get_json(silent=True) or {}
    board = ImportedBoard.from_dict(data.get("board") or {})
    try:
        board.apply(data.get("action"), data.get("payload") or {})
    except ValueError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    return jsonify({"ok": True, **board.to_dict()})


@bp.get("/kanban/import/sample.csv")
def kanban_import_sample():
    resp = make_response(sample_csv())
    resp.headers["Content-Type"] = "text/csv; charset=utf-8"
    resp.headers["Content-Disposition"] = f'attachment; filename="{SAMPLE_FILENAME}"'
    return resp


@bp.post("/kanban/import/export.xlsx")
def kanban_import_export():
    data = request.get_json(silent=True) or {}
    board = ImportedBoard.from_dict(data.get("board") or data)
    return send_file(
        export_workbook(board),
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        as_attachment=True,
        download_name=EXPORT_FILENAME,
    )
