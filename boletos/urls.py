from django.urls import path

from . import views


app_name = "boletos"

urlpatterns = [
    path("rifa/<slug:slug>/", views.raffle_detail, name="raffle_detail"),
    path("rifa/<slug:slug>/accion/", views.raffle_action, name="raffle_action"),
    path("rifa/<slug:slug>/boletos/ventana/", views.ticket_window, name="ticket_window"),
    path("comprar/<slug:slug>/", views.checkout, name="checkout"),
    path("pedido/<str:folio>/", views.order_created, name="order_created"),
]
