"""Default TCF catalog, written once on the very first run."""

from __future__ import annotations

from tcf_manager.data.models import TCF

DEFAULT_TCF_NAMES: tuple[str, ...] = (
    "فرادرمانی",
    "اسکن دوگانگی",
    "همفازی کیهانی",
    "همفازی کالبدی",
    "همفازی با زمان",
    "کنترل ذهن",
    "کنترل دشارژ بیرونی",
    "کنترل دشارژ درونی",
    "کنترل تشعشعات منفی",
    "طلب خیرها",
    "تزکیه تشعشعاتی",
    "وحدت",
    "من معنوی",
    "بارش",
    "ذهن بی ذهنی",
    "قونیه یک",
    "قونیه دو",
    "شارز یونی والکترونی",
    "پاکسازی چاکرا",
    "اعوذوا",
    "گستردگی",
    "آشتی با مرگ",
    "بینام ترم ۷ (رسیدن به درک چرخه)",
    "پیوند",
    "قنوت",
    "قیام",
    "رکوع",
    "سجده",
    "سلام",
    "تعمید روح",
    "قرارگیری در لاتضادی",
    "بینام ترم‌۸ (درک دوره ۸ )",
    "اصلاح طبایع در بنیاد",
    "حلقه ترک عادت",
    "اصلاح الگوی خواب",
    "ارتباط اصلاح چرخه های نرم افزاری معیوب در ناخودآگاهی - اعتیاد",
    "ارتباط اسکن نرم افزاری کلی چیدمان وجود",
    "ارتباط تنظیم و اصلاح مبدلهای انرژی پنهان",
    "ارتباط تغذیه چاکرایی",
    "حلقه درک حضور",
    "اعلام حلقه کل برای دیگران",
)


def build_default_catalog() -> list[TCF]:
    """One TCF per catalog name, each with a fresh id and empty description."""
    return [TCF(name=name, description="") for name in DEFAULT_TCF_NAMES]
