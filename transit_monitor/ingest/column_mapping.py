"""
Source column headers of the railway operations export and their field names.
"""

CSV_COLUMN_MAPPING: dict[str, str] = {
    "Код сооб": "message_code",
    "КПП": "checkpoint",
    "Дата передачи": "transmission_date",
    "Номер наряда": "order_number",
    "Стан. назн КЗХ": "destination_station_code",
    "Наимен.ст.наз КЗХ": "destination_station_name",
    "Общ.вес": "total_weight",
    "Мес": "month",
    "Документ": "document",
    "Код плат.": "payer_code",
    "Наименование плат.": "payer_name",
    "Плат. отпр.": "sender_code",
    "Наименование плат.отп": "sender_name",
    "ГО": "departure_code",
    "Стан.отпр. КЗХ": "departure_station_code",
    "Наимен.ст.отп КЗХ": "departure_station_name",
    "ГП": "destination_code",
    "Груз": "cargo_code",
    "Наименование груза": "cargo_name",
    "Дата отпр.": "departure_date",
    "Дата приб.": "arrival_date",
    "Дата выдачи": "issue_date",
    "Взыскано при отправлении": "collected_at_departure",
    "Взыскано по прибытию": "collected_at_arrival",
    "Страна назн.": "destination_country_code",
    "Наимен.стр.наз": "destination_country_name",
    "Страна отпр.": "departure_country_code",
    "Наимен.стр.отп": "departure_country_name",
    "Вид сообщения (0-внутр, 1,4-экспорт, 2,5-импорт)": "communication_type",
    "Признак 1 ч смеш.пер.(94 - 1 часть)": "mixed_transport_flag",
    "Номер вагона\\конт": "wagon_container_number",
    "Сумма сост.на вагон": "wagon_amount",
    "Вес на вагон": "wagon_weight",
    "Признак переадр": "readdressing_flag",
    "Особая отметка": "special_note",
    "Место расчета": "calculation_place",
    "Форма расчета": "calculation_form",
    "Расстояние": "distance",
    "Коорд.96": "coord_96",
    "Категория отправки": "shipment_category",
    "ТехПД": "tech_pd",
    "Грузоотправитель": "shipper",
    "Грузополучатель": "consignee",
}

# Headers a complete export is expected to carry
RECOMMENDED_HEADERS: tuple[str, ...] = ("Код сооб", "Номер наряда", "Дата передачи")

DATE_HEADER_MARKER = "Дата"
NUMERIC_HEADER_MARKERS: tuple[str, ...] = ("вес", "Сумма", "Взыскано", "Расстояние")


def map_header(header: str) -> str:
    """Return the field name for a source header; unknown headers pass through."""
    return CSV_COLUMN_MAPPING.get(header, header)
