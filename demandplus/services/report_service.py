# Relatórios em Excel
import io
from typing import Sequence

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from demandplus.core.dates import format_brazilian_date
from demandplus.models.demanda import Demand, DemandStatus
from demandplus.models.si import SI, SIStatus

DEMAND_COLUMNS = {
    "service_order": "OS",
    "location": "Local",
    "description": "Descrição",
    "difficulty": "Dificuldade",
    "status": "Status",
    "opening_date": "Abertura",
    "deadline": "Prazo",
    "observation": "Observação",
}

SI_COLUMNS = {
    "number": "Número",
    "location": "Local",
    "description": "Descrição",
    "status": "Status",
    "issue_date": "Emissão",
    "expiration_date": "Vencimento",
    "new_expiration_date": "Novo Vencimento",
    "extension_justification": "Justificativa",
    "responsible": "Responsável",
    "responsible_area": "Área",
    "linked_order": "OS Vinculada",
}

DATE_COLUMNS = {"Abertura", "Prazo", "Emissão", "Vencimento", "Novo Vencimento"}

STATUS_FILLS = {
    'green': [DemandStatus.COMPLETED.value, SIStatus.VIGENTE.value],
    'red': [SIStatus.EXPIRED.value],
    'yellow': [DemandStatus.IN_PROGRESS.value, DemandStatus.REQUEST_CALL.value, SIStatus.EXPIRING.value],
    'blue': [DemandStatus.NOT_STARTED.value, SIStatus.EXTENDED.value],
    'gray': [SIStatus.CLOSED.value],
}


def demands_to_dataframe(demands: Sequence[Demand]) -> pd.DataFrame:
    rows = [d.model_dump(mode="json", include=set(DEMAND_COLUMNS)) for d in demands]
    df = pd.DataFrame(rows, columns=list(DEMAND_COLUMNS)).rename(columns=DEMAND_COLUMNS)
    return _format_dates(df)


def sis_to_dataframe(sis: Sequence[SI], demands: Sequence[Demand]) -> pd.DataFrame:
    orders = {d.id: d.service_order for d in demands}
    rows = []
    for si in sis:
        row = si.model_dump(mode="json", include=set(SI_COLUMNS))
        row["linked_order"] = orders.get(si.demand_id or "", "")
        rows.append(row)
    df = pd.DataFrame(rows, columns=list(SI_COLUMNS)).rename(columns=SI_COLUMNS)
    return _format_dates(df)


def _format_dates(df: pd.DataFrame) -> pd.DataFrame:
    for col in DATE_COLUMNS.intersection(df.columns):
        df[col] = df[col].map(lambda v: format_brazilian_date(v) if pd.notna(v) and v else "")
    return df.fillna("")


def to_excel(df: pd.DataFrame, title: str = "Relatório") -> bytes:
    output = io.BytesIO()
    df_copy = df.copy()
    sheet_name = title[:31]
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        df_copy.to_excel(writer, index=False, sheet_name=sheet_name)
        worksheet = writer.sheets[sheet_name]
        header_fill = PatternFill(start_color="4F81BD", end_color="4F81BD", fill_type="solid")
        header_font = Font(color="FFFFFF", bold=True)
        border = Border(left=Side(style='thin'), right=Side(style='thin'), top=Side(style='thin'),
                        bottom=Side(style='thin'))
        alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)
        for col_num, col_name in enumerate(df_copy.columns, 1):
            cell = worksheet.cell(row=1, column=col_num)
            cell.fill, cell.font, cell.border, cell.alignment = header_fill, header_font, border, alignment
            column_letter = get_column_letter(col_num)
            longest = df_copy[col_name].astype(str).map(len).max() if not df_copy.empty else 0
            worksheet.column_dimensions[column_letter].width = min(max(longest, len(col_name)) + 2, 50)
        for row in range(2, len(df_copy) + 2):
            for col in range(1, len(df_copy.columns) + 1):
                cell = worksheet.cell(row=row, column=col)
                cell.border = border
                cell.alignment = Alignment(horizontal='left', vertical='center')
        if "Status" in df_copy.columns:
            fills = {
                'green': PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid"),
                'red': PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid"),
                'yellow': PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid"),
                'blue': PatternFill(start_color="DDEBF7", end_color="DDEBF7", fill_type="solid"),
                'gray': PatternFill(start_color="E7E6E6", end_color="E7E6E6", fill_type="solid"),
            }
            status_col_index = df_copy.columns.get_loc("Status") + 1
            for row in range(2, len(df_copy) + 2):
                cell = worksheet.cell(row=row, column=status_col_index)
                for color, values in STATUS_FILLS.items():
                    if cell.value in values:
                        cell.fill = fills[color]
                        break
        worksheet.freeze_panes = 'A2'
        worksheet.auto_filter.ref = worksheet.dimensions
    return output.getvalue()
