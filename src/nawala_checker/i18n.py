"""
Internationalization (i18n) module for the Nawala checker system.

Provides translations for all user-facing chat and notification messages in
English (en) and Indonesian (id). Messages are Telegram Markdown.
"""

from typing import Optional


# Supported languages
SUPPORTED_LANGUAGES = frozenset({"en", "id"})
DEFAULT_LANGUAGE = "en"


# Structure: {message_key: {language_code: translated_message}}
TRANSLATIONS: dict[str, dict[str, str]] = {
    # Shared labels
    "label.blocked": {"en": "BLOCKED", "id": "DIBLOKIR"},
    "label.unblocked": {"en": "UNBLOCKED", "id": "TIDAK DIBLOKIR"},
    "label.active": {"en": "Active", "id": "Aktif"},
    "label.inactive": {"en": "Inactive", "id": "Nonaktif"},
    "label.unknown": {"en": "Unknown", "id": "Tidak diketahui"},
    "label.never": {"en": "Never", "id": "Belum pernah"},
    "label.na": {"en": "N/A", "id": "N/A"},

    # Summary and error notices
    "report.title": {
        "en": "*Hourly Check Report*",
        "id": "*Laporan Pengecekan Per Jam*",
    },
    "report.multi_title": {
        "en": "*Multiple Domain Check Results*",
        "id": "*Hasil Pengecekan Beberapa Domain*",
    },
    "report.summary": {"en": "*Summary:*", "id": "*Ringkasan:*"},
    "report.domains_checked": {
        "en": "• Domains checked: {count}",
        "id": "• Domain dicek: {count}",
    },
    "report.total_checked": {
        "en": "• Total checked: {count}",
        "id": "• Total dicek: {count}",
    },
    "report.blocked": {"en": "• Blocked: {count}", "id": "• Diblokir: {count}"},
    "report.unblocked": {
        "en": "• Unblocked: {count}",
        "id": "• Tidak diblokir: {count}",
    },
    "report.blocked_domains": {
        "en": "*Blocked Domains:*",
        "id": "*Domain Diblokir:*",
    },
    "report.unblocked_domains": {
        "en": "*Unblocked Domains:*",
        "id": "*Domain Tidak Diblokir:*",
    },
    "report.checked_at": {
        "en": "*Checked at:* {time}",
        "id": "*Dicek pada:* {time}",
    },
    "report.error_title": {
        "en": "*Hourly Check Error*",
        "id": "*Kesalahan Pengecekan Per Jam*",
    },
    "report.error_body": {
        "en": "An error occurred during the hourly check:",
        "id": "Terjadi kesalahan saat pengecekan per jam:",
    },
    "report.error_time": {"en": "*Time:* {time}", "id": "*Waktu:* {time}"},

    # Authorization
    "bot.no_user": {
        "en": "❌ Access denied. User information not available.",
        "id": "❌ Akses ditolak. Informasi pengguna tidak tersedia.",
    },
    "bot.access_denied": {
        "en": "❌ Access denied. This bot is for admin use only.\n\nUse /myid to see your User ID.",
        "id": "❌ Akses ditolak. Bot ini hanya untuk admin.\n\nGunakan /myid untuk melihat User ID Anda.",
    },
    "bot.myid": {
        "en": (
            "*Your Telegram Information:*\n\n"
            "*User ID:* `{user_id}`\n"
            "*Username:* {username}\n"
            "*Name:* {name}\n\n"
            "*Admin ID:* `{admin_id}`\n\n"
            "If you need admin access, contact the bot administrator with your User ID."
        ),
        "id": (
            "*Informasi Telegram Anda:*\n\n"
            "*User ID:* `{user_id}`\n"
            "*Username:* {username}\n"
            "*Nama:* {name}\n\n"
            "*Admin ID:* `{admin_id}`\n\n"
            "Jika Anda memerlukan akses admin, hubungi administrator bot dengan User ID Anda."
        ),
    },
    "bot.no_username": {"en": "No username", "id": "Tanpa username"},

    # Start / help
    "bot.welcome": {
        "en": (
            "*Nawala Live Bot*\n\n"
            "Welcome! This bot helps you check domain blocking status.\n\n"
            "{commands}"
        ),
        "id": (
            "*Nawala Live Bot*\n\n"
            "Selamat datang! Bot ini membantu Anda mengecek status blokir domain.\n\n"
            "{commands}"
        ),
    },
    "bot.commands": {
        "en": (
            "*Commands:*\n"
            "• /check <domain> - Check if a domain is blocked\n"
            "• /checkmultiple <domain1,domain2> - Check multiple domains (comma-separated)\n"
            "• /results - View last check results for all domains\n"
            "• /reports [limit] - Get hourly reports (default: 5)\n"
            "• /status - Show bot status and statistics\n"
            "• /domains - List all domains in database\n"
            "• /adddomain <domain> - Add new domain to check\n"
            "• /toggledomain <domain> - Toggle domain active status\n"
            "• /deletedomain <domain> - Delete domain from database\n"
            "• /checknow - Trigger manual hourly check\n"
            "• /help - Show this help message\n\n"
            "*Note:* Maximum {max} domains per multiple check."
        ),
        "id": (
            "*Perintah:*\n"
            "• /check <domain> - Cek apakah domain diblokir\n"
            "• /checkmultiple <domain1,domain2> - Cek beberapa domain (pisahkan dengan koma)\n"
            "• /results - Lihat hasil cek terakhir semua domain\n"
            "• /reports [limit] - Lihat laporan per jam (default: 5)\n"
            "• /status - Tampilkan status bot dan statistik\n"
            "• /domains - Daftar semua domain di database\n"
            "• /adddomain <domain> - Tambah domain baru\n"
            "• /toggledomain <domain> - Ubah status aktif domain\n"
            "• /deletedomain <domain> - Hapus domain dari database\n"
            "• /checknow - Jalankan pengecekan per jam secara manual\n"
            "• /help - Tampilkan pesan bantuan ini\n\n"
            "*Catatan:* Maksimal {max} domain per pengecekan."
        ),
    },

    # /check and /checkmultiple
    "bot.check_usage": {
        "en": "Please provide a domain to check.\nExample: /check example.com",
        "id": "Silakan masukkan domain yang akan dicek.\nContoh: /check example.com",
    },
    "bot.invalid_domain": {
        "en": "Invalid domain format. Please provide a valid domain.",
        "id": "Format domain tidak valid. Silakan masukkan domain yang valid.",
    },
    "bot.checking": {"en": "Checking domain...", "id": "Mengecek domain..."},
    "bot.check_result": {
        "en": "{emoji} *Domain Check Result*\n\n*Domain:* {domain}\n*Status:* {status}\n*Checked at:* {time}",
        "id": "{emoji} *Hasil Cek Domain*\n\n*Domain:* {domain}\n*Status:* {status}\n*Dicek pada:* {time}",
    },
    "bot.check_error": {
        "en": "Error checking domain: {error}",
        "id": "Gagal mengecek domain: {error}",
    },
    "bot.checkmultiple_usage": {
        "en": "Please provide domains to check.\nExample: /checkmultiple example.com,reddit.com",
        "id": "Silakan masukkan domain yang akan dicek.\nContoh: /checkmultiple example.com,reddit.com",
    },
    "bot.no_valid_domains": {
        "en": "No valid domains provided.",
        "id": "Tidak ada domain valid yang diberikan.",
    },
    "bot.too_many_domains": {
        "en": "Maximum {max} domains allowed per check.",
        "id": "Maksimal {max} domain per pengecekan.",
    },
    "bot.invalid_domains": {
        "en": "Invalid domain format: {domains}",
        "id": "Format domain tidak valid: {domains}",
    },
    "bot.checking_many": {
        "en": "Checking {count} domain(s)...",
        "id": "Mengecek {count} domain...",
    },
    "bot.checkmultiple_error": {
        "en": "Error checking domains: {error}",
        "id": "Gagal mengecek domain: {error}",
    },

    # /results and /reports
    "bot.no_results": {
        "en": "📭 No check results available yet.",
        "id": "📭 Belum ada hasil pengecekan.",
    },
    "bot.results_title": {
        "en": "*Last Check Results*",
        "id": "*Hasil Cek Terakhir*",
    },
    "bot.invalid_limit": {
        "en": "Invalid limit. Please provide a number between 1 and 24.",
        "id": "Limit tidak valid. Masukkan angka antara 1 dan 24.",
    },
    "bot.no_reports": {
        "en": "📭 No hourly reports available yet.",
        "id": "📭 Belum ada laporan per jam.",
    },
    "bot.reports_title": {
        "en": "*Hourly Reports (Last {count})*",
        "id": "*Laporan Per Jam ({count} Terakhir)*",
    },
    "bot.report_item": {
        "en": "*Report {index}:*\n• Time: {time}\n• Domains checked: {total}\n• Blocked: {blocked}\n• Unblocked: {unblocked}",
        "id": "*Laporan {index}:*\n• Waktu: {time}\n• Domain dicek: {total}\n• Diblokir: {blocked}\n• Tidak diblokir: {unblocked}",
    },

    # /status
    "bot.status": {
        "en": (
            "*Nawala Live Bot Status*\n\n"
            "*Database Statistics:*\n"
            "• Total domains: {total}\n"
            "• Active domains: {active}\n"
            "• Hourly check domains: {hourly}\n"
            "• Recent checks: {recent}\n"
            "• Blocked: {blocked}\n"
            "• Unblocked: {unblocked}\n"
            "• Hourly reports: {reports}\n\n"
            "*Bot Info:*\n"
            "• Admin ID: {admin_id}\n"
            "• Scheduler: {scheduler}\n"
            "• Last update: {time}"
        ),
        "id": (
            "*Status Nawala Live Bot*\n\n"
            "*Statistik Database:*\n"
            "• Total domain: {total}\n"
            "• Domain aktif: {active}\n"
            "• Domain cek per jam: {hourly}\n"
            "• Pengecekan terbaru: {recent}\n"
            "• Diblokir: {blocked}\n"
            "• Tidak diblokir: {unblocked}\n"
            "• Laporan per jam: {reports}\n\n"
            "*Info Bot:*\n"
            "• Admin ID: {admin_id}\n"
            "• Penjadwal: {scheduler}\n"
            "• Pembaruan terakhir: {time}"
        ),
    },

    # /checknow
    "bot.checknow_empty": {
        "en": "No domains configured for hourly checking.",
        "id": "Tidak ada domain untuk pengecekan per jam.",
    },
    "bot.checknow_busy": {
        "en": "A check is already running. Please wait for it to finish.",
        "id": "Pengecekan sedang berjalan. Silakan tunggu hingga selesai.",
    },
    "bot.checknow_failed": {
        "en": "Manual hourly check failed: {error}",
        "id": "Pengecekan manual gagal: {error}",
    },

    # Domain management
    "bot.domains_empty": {
        "en": "📭 No domains found in database. Use /adddomain to add domains.",
        "id": "📭 Belum ada domain di database. Gunakan /adddomain untuk menambah domain.",
    },
    "bot.domains_title": {
        "en": "*Domains in Database*",
        "id": "*Domain di Database*",
    },
    "bot.domain_item": {
        "en": "*{index}. {name}*\n• Status: {status}\n• Frequency: {frequency}\n• Last status: {last_status}\n• Last checked: {last_checked}",
        "id": "*{index}. {name}*\n• Status: {status}\n• Frekuensi: {frequency}\n• Status terakhir: {last_status}\n• Terakhir dicek: {last_checked}",
    },
    "bot.domain_description": {
        "en": "• Description: {description}",
        "id": "• Deskripsi: {description}",
    },
    "bot.adddomain_usage": {
        "en": "Please provide a domain to add.\nExample: /adddomain example.com",
        "id": "Silakan masukkan domain yang akan ditambahkan.\nContoh: /adddomain example.com",
    },
    "bot.domain_added": {
        "en": "*Domain Added Successfully*\n\n*Domain:* {name}\n*Status:* {status}\n*Frequency:* {frequency}\n*Added at:* {time}",
        "id": "*Domain Berhasil Ditambahkan*\n\n*Domain:* {name}\n*Status:* {status}\n*Frekuensi:* {frequency}\n*Ditambahkan pada:* {time}",
    },
    "bot.domain_exists": {
        "en": "Domain already exists in database.",
        "id": "Domain sudah ada di database.",
    },
    "bot.toggledomain_usage": {
        "en": "Please provide a domain to toggle.\nExample: /toggledomain example.com",
        "id": "Silakan masukkan domain yang akan diubah.\nContoh: /toggledomain example.com",
    },
    "bot.domain_toggled": {
        "en": "*Domain Status Toggled*\n\n*Domain:* {name}\n*New Status:* {status}\n*Updated at:* {time}",
        "id": "*Status Domain Diubah*\n\n*Domain:* {name}\n*Status Baru:* {status}\n*Diperbarui pada:* {time}",
    },
    "bot.deletedomain_usage": {
        "en": "Please provide a domain to delete.\nExample: /deletedomain example.com",
        "id": "Silakan masukkan domain yang akan dihapus.\nContoh: /deletedomain example.com",
    },
    "bot.domain_deleted": {
        "en": "*Domain Deleted Successfully*\n\n*Domain:* {name}\n*Deleted at:* {time}\n\nAll check history for this domain has also been deleted.",
        "id": "*Domain Berhasil Dihapus*\n\n*Domain:* {name}\n*Dihapus pada:* {time}\n\nSemua riwayat pengecekan domain ini juga telah dihapus.",
    },
    "bot.domain_not_found": {
        "en": "Domain not found in database.",
        "id": "Domain tidak ditemukan di database.",
    },
    "bot.unexpected_error": {
        "en": "An unexpected error occurred. Please try again.",
        "id": "Terjadi kesalahan tak terduga. Silakan coba lagi.",
    },

    # Self-test output
    "selftest.header": {"en": "Nawala Checker Self-Test", "id": "Uji Mandiri Nawala Checker"},
    "selftest.config_validation": {
        "en": "Configuration validation:",
        "id": "Validasi konfigurasi:",
    },
    "selftest.config_valid": {"en": "Configuration is valid", "id": "Konfigurasi valid"},
    "selftest.config_invalid": {
        "en": "Configuration is invalid",
        "id": "Konfigurasi tidak valid",
    },
    "selftest.warnings": {"en": "Warnings:", "id": "Peringatan:"},
    "selftest.connectivity": {"en": "Connectivity:", "id": "Konektivitas:"},
    "selftest.success": {
        "en": "All checks passed",
        "id": "Semua pengecekan berhasil",
    },
    "selftest.failed": {"en": "Self-test failed", "id": "Uji mandiri gagal"},
    "selftest.duration": {"en": "Duration", "id": "Durasi"},
}


def get_message(
    key: str,
    language: Optional[str] = None,
    **kwargs,
) -> str:
    """
    Get a translated message by key.

    Args:
        key: The message key (e.g., 'report.title')
        language: Language code ('en' or 'id'). Defaults to DEFAULT_LANGUAGE.
        **kwargs: Format arguments for the message template

    Returns:
        The translated and formatted message string.
        If the key is not found, returns the key itself.
        If the language is not found, falls back to DEFAULT_LANGUAGE.

    Examples:
        >>> get_message('label.blocked', 'id')
        'DIBLOKIR'
        >>> get_message('report.blocked', 'en', count=2)
        '• Blocked: 2'
    """
    if language is None or language not in SUPPORTED_LANGUAGES:
        language = DEFAULT_LANGUAGE

    translations = TRANSLATIONS.get(key)
    if translations is None:
        return key

    message = translations.get(language) or translations.get(DEFAULT_LANGUAGE)
    if message is None:
        return key

    if kwargs:
        try:
            message = message.format(**kwargs)
        except KeyError:
            # Missing format arguments: return the template unformatted
            pass

    return message


def get_missing_translations(language: str) -> set[str]:
    """Message keys that have no translation for ``language``."""
    return {
        key for key, translations in TRANSLATIONS.items()
        if language not in translations
    }


def validate_translations() -> dict[str, set[str]]:
    """
    Validate that all languages have all translations.

    Returns:
        Dictionary mapping language codes to sets of missing message keys.
        Empty sets indicate complete translations.
    """
    return {
        language: get_missing_translations(language)
        for language in SUPPORTED_LANGUAGES
    }
