from __future__ import annotations

from django import forms
from django.core.exceptions import ValidationError

from .allocation import QUICK_PICK_QUANTITIES

BASE_INPUT = (
    "w-full rounded-xl border border-white/10 bg-slate-950/40 px-4 py-3 "
    "text-slate-100 placeholder:text-slate-500 outline-none "
    "focus:border-emerald-400/60 focus:ring-2 focus:ring-emerald-400/15"
)
BASE_SELECT = (
    "w-full rounded-xl border border-white/10 bg-slate-950/40 px-3 py-3 "
    "text-slate-100 outline-none focus:border-emerald-400/60 focus:ring-2 focus:ring-emerald-400/15"
)

PHONE_DIGITS = 10


class QuickPickForm(forms.Form):
    # The page offers QUICK_PICK_QUANTITIES; any positive amount is accepted.
    quantity = forms.IntegerField(min_value=1, initial=QUICK_PICK_QUANTITIES[0], label="Cantidad")


class PackForm(forms.Form):
    pack = forms.IntegerField(min_value=1, widget=forms.HiddenInput())
    quantity = forms.IntegerField(min_value=1, max_value=999, initial=1, label="Cantidad de paquetes")

    def __init__(self, *args, raffle=None, **kwargs):
        super().__init__(*args, **kwargs)
        self._raffle = raffle
        self.fields["quantity"].widget.attrs.setdefault("class", BASE_INPUT + " text-center")
        self.fields["quantity"].widget.attrs.setdefault("inputmode", "numeric")

    def clean_pack(self):
        position = self.cleaned_data["pack"]
        raffle = self._raffle
        if raffle is None or raffle.pack_at(position) is None:
            raise ValidationError("Ese paquete no existe para esta rifa.")
        return raffle.pack_at(position)


class CheckoutForm(forms.Form):
    full_name = forms.CharField(max_length=200, label="Nombre completo")
    phone = forms.CharField(max_length=20, label="Teléfono (WhatsApp)")
    district = forms.CharField(max_length=120, label="Estado")
    email = forms.EmailField(required=False, label="Email (opcional)")
    purchase_token = forms.CharField(max_length=64, required=False, widget=forms.HiddenInput())

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["full_name"].widget.attrs.setdefault("class", BASE_INPUT + " uppercase")
        self.fields["full_name"].widget.attrs.setdefault("autocomplete", "name")
        self.fields["full_name"].widget.attrs.setdefault(
            "oninput",
            "this.value=this.value.replace(/[0-9]/g,'').toUpperCase()",
        )
        self.fields["phone"].widget.attrs.setdefault("class", BASE_INPUT)
        self.fields["phone"].widget.attrs.setdefault("inputmode", "numeric")
        self.fields["phone"].widget.attrs.setdefault("pattern", "[0-9]*")
        self.fields["phone"].widget.attrs.setdefault("maxlength", str(PHONE_DIGITS))
        self.fields["phone"].widget.attrs.setdefault("oninput", "this.value=this.value.replace(/\\D/g,'')")
        self.fields["district"].widget.attrs.setdefault("class", BASE_INPUT)
        self.fields["email"].widget.attrs.setdefault("class", BASE_INPUT)
        self.fields["email"].widget.attrs.setdefault("placeholder", "tu-correo@ejemplo.com")

    def clean_full_name(self):
        name = (self.cleaned_data.get("full_name") or "").strip()
        if any(ch.isdigit() for ch in name):
            raise ValidationError("El nombre no debe contener números.")
        if len(name) < 3:
            raise ValidationError("Ingresa tu nombre completo.")
        return name.upper()

    def clean_phone(self):
        raw = (self.cleaned_data.get("phone") or "").strip()
        digits = "".join(ch for ch in raw if ch.isdecimal())
        if not digits:
            raise ValidationError("Ingresa el número de teléfono.")
        if len(digits) != PHONE_DIGITS:
            raise ValidationError(f"El número debe tener {PHONE_DIGITS} dígitos.")
        return digits

    def clean_district(self):
        return (self.cleaned_data.get("district") or "").strip()

    def customer_data(self) -> dict:
        return {
            "name": self.cleaned_data["full_name"],
            "phone": self.cleaned_data["phone"],
            "email": (self.cleaned_data.get("email") or "").strip(),
            "district": self.cleaned_data["district"],
        }
