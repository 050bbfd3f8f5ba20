# sales/documents.py
# Descargas de factura: PDF (reportlab), XML y ZIP con ambos.
import re
import zipfile
from io import BytesIO
from xml.etree import ElementTree as ET

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from core.normalizers import money

CONTENT_TYPES = {
    "pdf": "application/pdf",
    "xml": "application/xml",
    "zip": "application/zip",
}
ARTIFACT_FORMATS = tuple(CONTENT_TYPES)


def invoice_filename(record, fmt):
    base = re.sub(r"[^a-zA-Z0-9\-_]+", "_", record["number"]) or f"invoice-{record['id']}"
    return f"{base}.{fmt}"


def _fmt(value):
    return f"{money(value):.2f}"


def render_invoice_pdf(record, org=None):
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"Factura {record['number']}")
    y = 800

    c.setFont("Helvetica-Bold", 16)
    c.drawString(50, y, f"Factura {record['number']}")
    y -= 22
    if org is not None:
        c.setFont("Helvetica", 10)
        c.drawString(50, y, org.name)
        y -= 24

    c.setFont("Helvetica", 11)
    c.drawString(50, y, f"Cliente: {record['clientName']}"); y -= 18
    c.drawString(50, y, f"Emitida: {record['issuedAt'] or 'N/D'}"); y -= 18
    c.drawString(50, y, f"Vence: {record['dueAt'] or 'N/D'}"); y -= 28

    c.setFont("Helvetica-Bold", 11)
    c.drawString(50, y, "#")
    c.drawString(80, y, "Servicio")
    c.drawString(360, y, "Cant.")
    c.drawRightString(540, y, "Total")
    y -= 16
    c.setFont("Helvetica", 10)
    for line in record["details"]:
        if y < 120:
            c.showPage()
            c.setFont("Helvetica", 10)
            y = 800
        c.drawString(50, y, str(line["item"]))
        c.drawString(80, y, line["serviceName"][:50])
        c.drawString(360, y, str(line["quantity"]))
        c.drawRightString(540, y, _fmt(line["total"]))
        y -= 16

    y -= 14
    c.setFont("Helvetica", 11)
    c.drawRightString(540, y, f"Subtotal: {_fmt(record['subtotal'])}"); y -= 16
    for tax in (record["taxOne"], record["taxTwo"]):
        if tax:
            c.drawRightString(540, y, f"{tax['name']} ({tax['percentage']}%): {_fmt(tax['amount'])}"); y -= 16
    if record["includeIva"]:
        c.drawRightString(540, y, f"IVA: {_fmt(record['ivaAmount'])}"); y -= 16
    c.setFont("Helvetica-Bold", 12)
    c.drawRightString(540, y, f"Total: {_fmt(record['total'])}")

    c.showPage()
    c.save()
    pdf_bytes = buf.getvalue()
    buf.close()
    return pdf_bytes


def render_invoice_xml(record):
    root = ET.Element("invoice", id=str(record["id"]), number=record["number"], status=record["status"])
    ET.SubElement(root, "client", id=str(record["clientId"] or "")).text = record["clientName"]
    ET.SubElement(root, "issuedAt").text = record["issuedAt"] or ""
    ET.SubElement(root, "dueAt").text = record["dueAt"] or ""

    lines = ET.SubElement(root, "lines")
    for line in record["details"]:
        ET.SubElement(
            lines,
            "line",
            item=str(line["item"]),
            serviceId=str(line["serviceId"] or ""),
            quantity=str(line["quantity"]),
            total=_fmt(line["total"]),
        ).text = line["serviceName"]

    totals = ET.SubElement(root, "totals")
    ET.SubElement(totals, "subtotal").text = _fmt(record["subtotal"])
    for key in ("taxOne", "taxTwo"):
        tax = record[key]
        if tax:
            ET.SubElement(totals, "tax", name=tax["name"], percentage=str(tax["percentage"])).text = _fmt(tax["amount"])
    ET.SubElement(totals, "vat", included=str(record["includeIva"]).lower()).text = _fmt(record["ivaAmount"])
    ET.SubElement(totals, "total").text = _fmt(record["total"])

    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def render_invoice_zip(record, org=None):
    buf = BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(invoice_filename(record, "pdf"), render_invoice_pdf(record, org))
        zf.writestr(invoice_filename(record, "xml"), render_invoice_xml(record))
    return buf.getvalue()


def build_invoice_artifact(record, fmt, org=None):
    """Devuelve (filename, content_type, bytes) para el formato pedido."""
    if fmt == "pdf":
        content = render_invoice_pdf(record, org)
    elif fmt == "xml":
        content = render_invoice_xml(record)
    elif fmt == "zip":
        content = render_invoice_zip(record, org)
    else:
        raise ValueError(f"Formato no soportado: {fmt}")
    return invoice_filename(record, fmt), CONTENT_TYPES[fmt], content
