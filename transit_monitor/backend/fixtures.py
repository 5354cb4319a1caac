"""
Static fixtures returned by the backend facade when the API is unreachable.

Shapes match the API responses the dashboard expects.
"""

PROBABILITY_DATA = [
    {"category": "high", "label": "Высокая вероятность", "count": 156, "percentage": 8.2},
    {"category": "elevated", "label": "Повышенная вероятность", "count": 342, "percentage": 18.0},
    {"category": "medium", "label": "Средняя вероятность", "count": 587, "percentage": 30.9},
    {"category": "low", "label": "Низкая вероятность", "count": 815, "percentage": 42.9},
]

ANOMALY_DATA = {
    "weight_anomalies": 234,
    "time_anomalies": 187,
    "route_anomalies": 98,
    "duplicates": 45,
    "total_records": 1900,
}

CRITICAL_ANOMALIES = [
    {
        "id": f"crit_{index:03d}",
        "type": anomaly_type,
        "severity": severity,
        "description": description,
        "details": {"wagon_number": wagon},
    }
    for index, (anomaly_type, severity, description, wagon) in enumerate(
        [
            ("weight", "critical", "Расхождение веса более 15% между отправлением и прибытием", "52345678"),
            ("route", "high", "Отклонение от заявленного маршрута через третью страну", "61234590"),
            ("time", "high", "Время в пути превышает норматив в 3 раза", "58812344"),
            ("duplicate", "medium", "Повторная регистрация вагона в одном наряде", "52345678"),
            ("weight", "medium", "Вес на вагон превышает грузоподъемность", "60011223"),
        ],
        start=1,
    )
]

TIMELINE_DATA = [
    {"date": f"2024-01-{day:02d}", "weight_anomalies": w, "time_anomalies": t,
     "route_anomalies": r, "duplicates": d, "total": w + t + r + d}
    for day, w, t, r, d in [
        (15, 12, 8, 4, 2),
        (16, 15, 6, 5, 1),
        (17, 9, 11, 3, 3),
        (18, 14, 7, 6, 2),
        (19, 18, 9, 2, 0),
        (20, 11, 5, 7, 1),
        (21, 13, 10, 4, 2),
    ]
]

QUICK_ACCESS_ITEMS = [
    {"id": "anomalies", "title": "Аномалии", "path": "/anomalies"},
    {"id": "map", "title": "Карта маршрутов", "path": "/map"},
    {"id": "reports", "title": "Отчеты", "path": "/reports"},
]

SYSTEM_STATS = {
    "total_records": 1900,
    "processed_today": 214,
    "active_alerts": 23,
    "uptime_percent": 99.7,
}

APP_CONSTANTS = {
    "app_name": "Gray Transit Monitor",
    "version": "1.0.0",
    "page_sizes": [25, 50, 100, 200],
    "max_upload_mb": 500,
}

HEALTH_UNAVAILABLE = {"status": "error", "message": "API недоступен"}

COUNTRIES_DATA = [
    {"code": "398", "name": "Казахстан"},
    {"code": "643", "name": "Россия"},
    {"code": "156", "name": "Китай"},
    {"code": "860", "name": "Узбекистан"},
    {"code": "417", "name": "Кыргызстан"},
]

CARGO_TYPES = [
    {"code": "161", "name": "Уголь каменный"},
    {"code": "231", "name": "Пшеница"},
    {"code": "321", "name": "Руды железные"},
    {"code": "421", "name": "Нефтепродукты"},
    {"code": "693", "name": "Контейнеры"},
]

RAILWAY_STATIONS = [
    {"code": "700000", "name": "Алматы-1", "country": "Казахстан"},
    {"code": "708600", "name": "Достык", "country": "Казахстан"},
    {"code": "690007", "name": "Сарыагаш", "country": "Казахстан"},
    {"code": "200004", "name": "Москва-Товарная", "country": "Россия"},
    {"code": "650005", "name": "Алашанькоу", "country": "Китай"},
]

ANALYTICS_DATA = {
    "performance": {"processed_per_hour": 1250, "avg_processing_ms": 38, "error_rate": 0.4},
    "geographic": [
        {"region": "Алматинская область", "country": "Казахстан", "anomaly_count": 45,
         "total_operations": 620, "anomaly_percentage": 7.3, "severity": "high"},
        {"region": "Туркестанская область", "country": "Казахстан", "anomaly_count": 21,
         "total_operations": 410, "anomaly_percentage": 5.1, "severity": "medium"},
    ],
    "financial": {"collected_at_departure": 18_450_000.0, "collected_at_arrival": 17_980_500.0, "currency": "KZT"},
}

CHAT_SESSIONS = [
    {"id": "session_001", "title": "Анализ весовых аномалий", "created_at": "2024-01-20T09:15:00"},
    {"id": "session_002", "title": "Маршруты через Достык", "created_at": "2024-01-21T14:40:00"},
]

PRESET_QUESTIONS = [
    {"id": "q1", "category": "anomalies", "text": "Какие вагоны имеют наибольшее расхождение веса?"},
    {"id": "q2", "category": "anomalies", "text": "Сколько дубликатов найдено за неделю?"},
    {"id": "q3", "category": "routes", "text": "Какие маршруты чаще всего отклоняются от плана?"},
    {"id": "q4", "category": "reports", "text": "Сформировать отчет за последний месяц"},
]

NAVIGATION_ITEMS = [
    {"id": "dashboard", "title": "Панель", "path": "/"},
    {"id": "anomalies", "title": "Аномалии", "path": "/anomalies"},
    {"id": "map", "title": "Карта", "path": "/map"},
    {"id": "reports", "title": "Отчеты", "path": "/reports"},
]

DEFAULT_USER = {
    "id": "user_001",
    "username": "analyst",
    "name": "Аналитик",
    "role": "admin",
    "avatar": None,
    "is_active": True,
}
