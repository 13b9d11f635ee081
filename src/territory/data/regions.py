"""Static reference data for Russian administrative regions.

Every alias table used by the address normalizer lives here; the runtime
lookup service in ``region_lookup`` compiles it once.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RegionDefinition:
    """A federal subject and the textual forms that name it explicitly."""

    name: str
    kind: str
    stem: str | None = None
    aliases: tuple[str, ...] = ()


def _oblast(name: str, stem: str, *aliases: str) -> RegionDefinition:
    return RegionDefinition(name=name, kind="oblast", stem=stem, aliases=aliases)


def _krai(name: str, stem: str, *aliases: str) -> RegionDefinition:
    return RegionDefinition(name=name, kind="krai", stem=stem, aliases=aliases)


def _republic(name: str, stem: str | None, *aliases: str) -> RegionDefinition:
    return RegionDefinition(name=name, kind="republic", stem=stem, aliases=aliases)


def _okrug(name: str, stem: str, *aliases: str) -> RegionDefinition:
    return RegionDefinition(name=name, kind="okrug", stem=stem, aliases=aliases)


# Aliases are matched as whole words on folded text (lower case, "ё" -> "е").
REGIONS: tuple[RegionDefinition, ...] = (
    _oblast("Амурская область", "амурск"),
    _oblast("Архангельская область", "архангельск"),
    _oblast("Астраханская область", "астраханск"),
    _oblast("Белгородская область", "белгородск"),
    _oblast("Брянская область", "брянск"),
    _oblast("Владимирская область", "владимирск"),
    _oblast("Волгоградская область", "волгоградск"),
    _oblast("Вологодская область", "вологодск"),
    _oblast("Воронежская область", "воронежск"),
    _oblast("Ивановская область", "ивановск"),
    _oblast("Иркутская область", "иркутск"),
    _oblast("Калининградская область", "калининградск"),
    _oblast("Калужская область", "калужск"),
    _oblast("Кемеровская область", "кемеровск", "кузбасс"),
    _oblast("Кировская область", "кировск"),
    _oblast("Костромская область", "костромск"),
    _oblast("Курганская область", "курганск"),
    _oblast("Курская область", "курск"),
    _oblast("Ленинградская область", "ленинградск"),
    _oblast("Липецкая область", "липецк"),
    _oblast("Магаданская область", "магаданск"),
    _oblast("Московская область", "московск", "подмосковье"),
    _oblast("Мурманская область", "мурманск"),
    _oblast("Нижегородская область", "нижегородск"),
    _oblast("Новгородская область", "новгородск"),
    _oblast("Новосибирская область", "новосибирск"),
    _oblast("Омская область", "омск"),
    _oblast("Оренбургская область", "оренбургск"),
    _oblast("Орловская область", "орловск"),
    _oblast("Пензенская область", "пензенск"),
    _oblast("Псковская область", "псковск"),
    _oblast("Ростовская область", "ростовск"),
    _oblast("Рязанская область", "рязанск"),
    _oblast("Самарская область", "самарск"),
    _oblast("Саратовская область", "саратовск"),
    _oblast("Сахалинская область", "сахалинск"),
    _oblast("Свердловская область", "свердловск"),
    _oblast("Смоленская область", "смоленск"),
    _oblast("Тамбовская область", "тамбовск"),
    _oblast("Тверская область", "тверск"),
    _oblast("Томская область", "томск"),
    _oblast("Тульская область", "тульск"),
    _oblast("Тюменская область", "тюменск"),
    _oblast("Ульяновская область", "ульяновск"),
    _oblast("Челябинская область", "челябинск"),
    _oblast("Ярославская область", "ярославск"),
    _oblast("Еврейская автономная область", "еврейск", "еао"),
    _krai("Алтайский край", "алтайск"),
    _krai("Забайкальский край", "забайкальск"),
    _krai("Камчатский край", "камчатск"),
    _krai("Краснодарский край", "краснодарск", "кубань"),
    _krai("Красноярский край", "красноярск"),
    _krai("Пермский край", "пермск"),
    _krai("Приморский край", "приморск", "приморье"),
    _krai("Ставропольский край", "ставропольск", "ставрополье"),
    _krai("Хабаровский край", "хабаровск"),
    _republic("Республика Адыгея", "адыгейск", "адыгея"),
    _republic("Республика Алтай", None),
    _republic("Республика Башкортостан", "башкирск", "башкортостан", "башкирия"),
    _republic("Республика Бурятия", "бурятск", "бурятия"),
    _republic("Республика Дагестан", "дагестанск", "дагестан"),
    _republic("Республика Ингушетия", "ингушск", "ингушетия"),
    _republic("Кабардино-Балкарская Республика", "кабардино-балкарск", "кабардино-балкария", "кбр"),
    _republic("Республика Калмыкия", "калмыцк", "калмыкия"),
    _republic("Карачаево-Черкесская Республика", "карачаево-черкесск", "карачаево-черкесия", "кчр"),
    _republic("Республика Карелия", "карельск", "карелия"),
    _republic("Республика Коми", None, "коми"),
    _republic("Республика Крым", None, "крым"),
    _republic("Республика Марий Эл", None, "марий эл"),
    _republic("Республика Мордовия", "мордовск", "мордовия"),
    _republic("Республика Саха (Якутия)", None, "якутия", "саха"),
    _republic("Республика Северная Осетия — Алания", None, "северная осетия", "алания"),
    _republic("Республика Татарстан", "татарск", "татарстан"),
    _republic("Республика Тыва", None, "тыва", "тува"),
    _republic("Удмуртская Республика", "удмуртск", "удмуртия"),
    _republic("Республика Хакасия", "хакасск", "хакасия"),
    _republic("Чеченская Республика", "чеченск", "чечня"),
    _republic("Чувашская Республика", "чувашск", "чувашия"),
    _okrug("Ханты-Мансийский автономный округ — Югра", "ханты-мансийск", "хмао", "югра"),
    _okrug("Ямало-Ненецкий автономный округ", "ямало-ненецк", "янао"),
    _okrug("Ненецкий автономный округ", "ненецк"),
    _okrug("Чукотский автономный округ", "чукотск", "чукотка"),
    RegionDefinition(name="Москва", kind="federal_city"),
    RegionDefinition(name="Санкт-Петербург", kind="federal_city"),
    RegionDefinition(name="Севастополь", kind="federal_city"),
)

# Region names that only appear after a "Республика" marker ("Республика Алтай"
# must not swallow "Алтайский край").
REPUBLIC_MARKER_ONLY: dict[str, str] = {
    "алтай": "Республика Алтай",
}


# folded city name -> (display name, region)
CITY_TO_REGION: dict[str, tuple[str, str]] = {
    "москва": ("Москва", "Москва"),
    "зеленоград": ("Зеленоград", "Москва"),
    "санкт-петербург": ("Санкт-Петербург", "Санкт-Петербург"),
    "петербург": ("Санкт-Петербург", "Санкт-Петербург"),
    "спб": ("Санкт-Петербург", "Санкт-Петербург"),
    "севастополь": ("Севастополь", "Севастополь"),
    "подольск": ("Подольск", "Московская область"),
    "химки": ("Химки", "Московская область"),
    "балашиха": ("Балашиха", "Московская область"),
    "мытищи": ("Мытищи", "Московская область"),
    "королев": ("Королёв", "Московская область"),
    "люберцы": ("Люберцы", "Московская область"),
    "красногорск": ("Красногорск", "Московская область"),
    "электросталь": ("Электросталь", "Московская область"),
    "коломна": ("Коломна", "Московская область"),
    "одинцово": ("Одинцово", "Московская область"),
    "домодедово": ("Домодедово", "Московская область"),
    "серпухов": ("Серпухов", "Московская область"),
    "щелково": ("Щёлково", "Московская область"),
    "пушкино": ("Пушкино", "Московская область"),
    "сергиев посад": ("Сергиев Посад", "Московская область"),
    "раменское": ("Раменское", "Московская область"),
    "долгопрудный": ("Долгопрудный", "Московская область"),
    "реутов": ("Реутов", "Московская область"),
    "жуковский": ("Жуковский", "Московская область"),
    "ногинск": ("Ногинск", "Московская область"),
    "гатчина": ("Гатчина", "Ленинградская область"),
    "выборг": ("Выборг", "Ленинградская область"),
    "всеволожск": ("Всеволожск", "Ленинградская область"),
    "тосно": ("Тосно", "Ленинградская область"),
    "кириши": ("Кириши", "Ленинградская область"),
    "сосновый бор": ("Сосновый Бор", "Ленинградская область"),
    "краснодар": ("Краснодар", "Краснодарский край"),
    "сочи": ("Сочи", "Краснодарский край"),
    "новороссийск": ("Новороссийск", "Краснодарский край"),
    "армавир": ("Армавир", "Краснодарский край"),
    "анапа": ("Анапа", "Краснодарский край"),
    "геленджик": ("Геленджик", "Краснодарский край"),
    "ейск": ("Ейск", "Краснодарский край"),
    "туапсе": ("Туапсе", "Краснодарский край"),
    "кропоткин": ("Кропоткин", "Краснодарский край"),
    "ростов-на-дону": ("Ростов-на-Дону", "Ростовская область"),
    "ростов на дону": ("Ростов-на-Дону", "Ростовская область"),
    "таганрог": ("Таганрог", "Ростовская область"),
    "шахты": ("Шахты", "Ростовская область"),
    "новочеркасск": ("Новочеркасск", "Ростовская область"),
    "волгодонск": ("Волгодонск", "Ростовская область"),
    "батайск": ("Батайск", "Ростовская область"),
    "екатеринбург": ("Екатеринбург", "Свердловская область"),
    "нижний тагил": ("Нижний Тагил", "Свердловская область"),
    "каменск-уральский": ("Каменск-Уральский", "Свердловская область"),
    "первоуральск": ("Первоуральск", "Свердловская область"),
    "новосибирск": ("Новосибирск", "Новосибирская область"),
    "бердск": ("Бердск", "Новосибирская область"),
    "казань": ("Казань", "Республика Татарстан"),
    "набережные челны": ("Набережные Челны", "Республика Татарстан"),
    "нижнекамск": ("Нижнекамск", "Республика Татарстан"),
    "альметьевск": ("Альметьевск", "Республика Татарстан"),
    "зеленодольск": ("Зеленодольск", "Республика Татарстан"),
    "нижний новгород": ("Нижний Новгород", "Нижегородская область"),
    "дзержинск": ("Дзержинск", "Нижегородская область"),
    "арзамас": ("Арзамас", "Нижегородская область"),
    "самара": ("Самара", "Самарская область"),
    "тольятти": ("Тольятти", "Самарская область"),
    "сызрань": ("Сызрань", "Самарская область"),
    "уфа": ("Уфа", "Республика Башкортостан"),
    "стерлитамак": ("Стерлитамак", "Республика Башкортостан"),
    "салават": ("Салават", "Республика Башкортостан"),
    "нефтекамск": ("Нефтекамск", "Республика Башкортостан"),
    "красноярск": ("Красноярск", "Красноярский край"),
    "норильск": ("Норильск", "Красноярский край"),
    "ачинск": ("Ачинск", "Красноярский край"),
    "владивосток": ("Владивосток", "Приморский край"),
    "уссурийск": ("Уссурийск", "Приморский край"),
    "находка": ("Находка", "Приморский край"),
    "волгоград": ("Волгоград", "Волгоградская область"),
    "волжский": ("Волжский", "Волгоградская область"),
    "камышин": ("Камышин", "Волгоградская область"),
    "воронеж": ("Воронеж", "Воронежская область"),
    "челябинск": ("Челябинск", "Челябинская область"),
    "магнитогорск": ("Магнитогорск", "Челябинская область"),
    "златоуст": ("Златоуст", "Челябинская область"),
    "миасс": ("Миасс", "Челябинская область"),
    "пермь": ("Пермь", "Пермский край"),
    "березники": ("Березники", "Пермский край"),
    "омск": ("Омск", "Омская область"),
    "рязань": ("Рязань", "Рязанская область"),
    "саратов": ("Саратов", "Саратовская область"),
    "энгельс": ("Энгельс", "Саратовская область"),
    "балаково": ("Балаково", "Саратовская область"),
    "ульяновск": ("Ульяновск", "Ульяновская область"),
    "димитровград": ("Димитровград", "Ульяновская область"),
    "калининград": ("Калининград", "Калининградская область"),
    "симферополь": ("Симферополь", "Республика Крым"),
    "керчь": ("Керчь", "Республика Крым"),
    "евпатория": ("Евпатория", "Республика Крым"),
    "ялта": ("Ялта", "Республика Крым"),
    "феодосия": ("Феодосия", "Республика Крым"),
    "ставрополь": ("Ставрополь", "Ставропольский край"),
    "пятигорск": ("Пятигорск", "Ставропольский край"),
    "кисловодск": ("Кисловодск", "Ставропольский край"),
    "невинномысск": ("Невинномысск", "Ставропольский край"),
    "ессентуки": ("Ессентуки", "Ставропольский край"),
    "нальчик": ("Нальчик", "Кабардино-Балкарская Республика"),
    "владикавказ": ("Владикавказ", "Республика Северная Осетия — Алания"),
    "грозный": ("Грозный", "Чеченская Республика"),
    "махачкала": ("Махачкала", "Республика Дагестан"),
    "дербент": ("Дербент", "Республика Дагестан"),
    "хасавюрт": ("Хасавюрт", "Республика Дагестан"),
    "каспийск": ("Каспийск", "Республика Дагестан"),
    "майкоп": ("Майкоп", "Республика Адыгея"),
    "магас": ("Магас", "Республика Ингушетия"),
    "назрань": ("Назрань", "Республика Ингушетия"),
    "черкесск": ("Черкесск", "Карачаево-Черкесская Республика"),
    "элиста": ("Элиста", "Республика Калмыкия"),
    "тверь": ("Тверь", "Тверская область"),
    "ярославль": ("Ярославль", "Ярославская область"),
    "рыбинск": ("Рыбинск", "Ярославская область"),
    "вологда": ("Вологда", "Вологодская область"),
    "череповец": ("Череповец", "Вологодская область"),
    "архангельск": ("Архангельск", "Архангельская область"),
    "северодвинск": ("Северодвинск", "Архангельская область"),
    "мурманск": ("Мурманск", "Мурманская область"),
    "петрозаводск": ("Петрозаводск", "Республика Карелия"),
    "сыктывкар": ("Сыктывкар", "Республика Коми"),
    "ухта": ("Ухта", "Республика Коми"),
    "великий новгород": ("Великий Новгород", "Новгородская область"),
    "псков": ("Псков", "Псковская область"),
    "великие луки": ("Великие Луки", "Псковская область"),
    "смоленск": ("Смоленск", "Смоленская область"),
    "брянск": ("Брянск", "Брянская область"),
    "калуга": ("Калуга", "Калужская область"),
    "обнинск": ("Обнинск", "Калужская область"),
    "тула": ("Тула", "Тульская область"),
    "новомосковск": ("Новомосковск", "Тульская область"),
    "орел": ("Орёл", "Орловская область"),
    "курск": ("Курск", "Курская область"),
    "белгород": ("Белгород", "Белгородская область"),
    "старый оскол": ("Старый Оскол", "Белгородская область"),
    "тамбов": ("Тамбов", "Тамбовская область"),
    "липецк": ("Липецк", "Липецкая область"),
    "владимир": ("Владимир", "Владимирская область"),
    "ковров": ("Ковров", "Владимирская область"),
    "муром": ("Муром", "Владимирская область"),
    "иваново": ("Иваново", "Ивановская область"),
    "кострома": ("Кострома", "Костромская область"),
    "киров": ("Киров", "Кировская область"),
    "йошкар-ола": ("Йошкар-Ола", "Республика Марий Эл"),
    "ижевск": ("Ижевск", "Удмуртская Республика"),
    "чебоксары": ("Чебоксары", "Чувашская Республика"),
    "новочебоксарск": ("Новочебоксарск", "Чувашская Республика"),
    "саранск": ("Саранск", "Республика Мордовия"),
    "пенза": ("Пенза", "Пензенская область"),
    "оренбург": ("Оренбург", "Оренбургская область"),
    "орск": ("Орск", "Оренбургская область"),
    "астрахань": ("Астрахань", "Астраханская область"),
    "тюмень": ("Тюмень", "Тюменская область"),
    "тобольск": ("Тобольск", "Тюменская область"),
    "сургут": ("Сургут", "Ханты-Мансийский автономный округ — Югра"),
    "нижневартовск": ("Нижневартовск", "Ханты-Мансийский автономный округ — Югра"),
    "ханты-мансийск": ("Ханты-Мансийск", "Ханты-Мансийский автономный округ — Югра"),
    "нефтеюганск": ("Нефтеюганск", "Ханты-Мансийский автономный округ — Югра"),
    "салехард": ("Салехард", "Ямало-Ненецкий автономный округ"),
    "новый уренгой": ("Новый Уренгой", "Ямало-Ненецкий автономный округ"),
    "ноябрьск": ("Ноябрьск", "Ямало-Ненецкий автономный округ"),
    "нарьян-мар": ("Нарьян-Мар", "Ненецкий автономный округ"),
    "курган": ("Курган", "Курганская область"),
    "томск": ("Томск", "Томская область"),
    "северск": ("Северск", "Томская область"),
    "кемерово": ("Кемерово", "Кемеровская область"),
    "новокузнецк": ("Новокузнецк", "Кемеровская область"),
    "прокопьевск": ("Прокопьевск", "Кемеровская область"),
    "абакан": ("Абакан", "Республика Хакасия"),
    "барнаул": ("Барнаул", "Алтайский край"),
    "бийск": ("Бийск", "Алтайский край"),
    "рубцовск": ("Рубцовск", "Алтайский край"),
    "горно-алтайск": ("Горно-Алтайск", "Республика Алтай"),
    "иркутск": ("Иркутск", "Иркутская область"),
    "братск": ("Братск", "Иркутская область"),
    "ангарск": ("Ангарск", "Иркутская область"),
    "кызыл": ("Кызыл", "Республика Тыва"),
    "улан-удэ": ("Улан-Удэ", "Республика Бурятия"),
    "чита": ("Чита", "Забайкальский край"),
    "благовещенск": ("Благовещенск", "Амурская область"),
    "якутск": ("Якутск", "Республика Саха (Якутия)"),
    "биробиджан": ("Биробиджан", "Еврейская автономная область"),
    "хабаровск": ("Хабаровск", "Хабаровский край"),
    "комсомольск-на-амуре": ("Комсомольск-на-Амуре", "Хабаровский край"),
    "петропавловск-камчатский": ("Петропавловск-Камчатский", "Камчатский край"),
    "магадан": ("Магадан", "Магаданская область"),
    "анадырь": ("Анадырь", "Чукотский автономный округ"),
    "южно-сахалинск": ("Южно-Сахалинск", "Сахалинская область"),
}


# (first prefix, last prefix, region); prefixes are the first three digits.
_POSTAL_PREFIX_RANGES: tuple[tuple[int, int, str], ...] = (
    (101, 135, "Москва"),
    (140, 144, "Московская область"),
    (150, 152, "Ярославская область"),
    (153, 155, "Ивановская область"),
    (156, 157, "Костромская область"),
    (160, 162, "Вологодская область"),
    (163, 165, "Архангельская область"),
    (166, 166, "Ненецкий автономный округ"),
    (167, 169, "Республика Коми"),
    (170, 172, "Тверская область"),
    (173, 175, "Новгородская область"),
    (180, 182, "Псковская область"),
    (183, 184, "Мурманская область"),
    (185, 186, "Республика Карелия"),
    (187, 189, "Ленинградская область"),
    (190, 199, "Санкт-Петербург"),
    (214, 216, "Смоленская область"),
    (236, 238, "Калининградская область"),
    (241, 243, "Брянская область"),
    (248, 249, "Калужская область"),
    (295, 298, "Республика Крым"),
    (299, 299, "Севастополь"),
    (300, 301, "Тульская область"),
    (302, 303, "Орловская область"),
    (305, 307, "Курская область"),
    (308, 309, "Белгородская область"),
    (344, 347, "Ростовская область"),
    (350, 354, "Краснодарский край"),
    (355, 357, "Ставропольский край"),
    (358, 359, "Республика Калмыкия"),
    (360, 361, "Кабардино-Балкарская Республика"),
    (362, 363, "Республика Северная Осетия — Алания"),
    (364, 366, "Чеченская Республика"),
    (367, 368, "Республика Дагестан"),
    (369, 369, "Карачаево-Черкесская Республика"),
    (385, 385, "Республика Адыгея"),
    (386, 386, "Республика Ингушетия"),
    (390, 391, "Рязанская область"),
    (392, 393, "Тамбовская область"),
    (394, 397, "Воронежская область"),
    (398, 399, "Липецкая область"),
    (400, 404, "Волгоградская область"),
    (410, 413, "Саратовская область"),
    (414, 416, "Астраханская область"),
    (420, 423, "Республика Татарстан"),
    (424, 425, "Республика Марий Эл"),
    (426, 427, "Удмуртская Республика"),
    (428, 429, "Чувашская Республика"),
    (430, 431, "Республика Мордовия"),
    (432, 433, "Ульяновская область"),
    (440, 442, "Пензенская область"),
    (443, 446, "Самарская область"),
    (450, 453, "Республика Башкортостан"),
    (454, 457, "Челябинская область"),
    (460, 462, "Оренбургская область"),
    (600, 602, "Владимирская область"),
    (603, 607, "Нижегородская область"),
    (610, 613, "Кировская область"),
    (614, 619, "Пермский край"),
    (620, 624, "Свердловская область"),
    (625, 627, "Тюменская область"),
    (628, 628, "Ханты-Мансийский автономный округ — Югра"),
    (629, 629, "Ямало-Ненецкий автономный округ"),
    (630, 633, "Новосибирская область"),
    (634, 636, "Томская область"),
    (640, 641, "Курганская область"),
    (644, 646, "Омская область"),
    (649, 649, "Республика Алтай"),
    (650, 654, "Кемеровская область"),
    (655, 655, "Республика Хакасия"),
    (656, 659, "Алтайский край"),
    (660, 663, "Красноярский край"),
    (664, 666, "Иркутская область"),
    (667, 668, "Республика Тыва"),
    (669, 669, "Иркутская область"),
    (670, 671, "Республика Бурятия"),
    (672, 674, "Забайкальский край"),
    (675, 676, "Амурская область"),
    (677, 678, "Республика Саха (Якутия)"),
    (679, 679, "Еврейская автономная область"),
    (680, 682, "Хабаровский край"),
    (683, 684, "Камчатский край"),
    (685, 686, "Магаданская область"),
    (689, 689, "Чукотский автономный округ"),
    (690, 692, "Приморский край"),
    (693, 694, "Сахалинская область"),
)

POSTAL_PREFIX_TO_REGION: dict[str, str] = {
    f"{prefix:03d}": region
    for start, end, region in _POSTAL_PREFIX_RANGES
    for prefix in range(start, end + 1)
}
