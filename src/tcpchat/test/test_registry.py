# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
Tests for L{tcpchat.registry}.
"""

from twisted.internet.address import IPv4Address
from twisted.internet.error import ConnectionDone, ConnectionLost
from twisted.logger import capturedLogs
from twisted.trial.unittest import SynchronousTestCase

from tcpchat.registry import Client, ClientRegistry
from tcpchat.test.helpers import (
    FakeSocket,
    MemoryWatchSet,
    abort,
    connectedPair,
    noticesIn,
)

ADDRESS = IPv4Address("TCP", "192.0.2.7", 4321)


class ClientTests(SynchronousTestCase):
    """
    Tests for L{Client}.
    """

    def test_peer(self):
        """
        L{Client.peer} is the address formatted as C{host:port}.
        """
        client = Client(1, FakeSocket(), ADDRESS)
        self.assertEqual(client.peer, "192.0.2.7:4321")

    def test_identity(self):
        """
        Clients with the same address are still distinct.
        """
        skt = FakeSocket()
        self.assertNotEqual(Client(1, skt, ADDRESS), Client(2, skt, ADDRESS))

    def test_receive(self):
        """
        L{Client.receive} returns what the peer sent.
        """
        peer, skt = connectedPair(self)
        client = Client(1, skt, ADDRESS)
        peer.sendall(b"hello\n")
        self.assertEqual(client.receive(), b"hello\n")

    def test_receiveClosed(self):
        """
        L{Client.receive} raises L{ConnectionDone} once the peer has closed
        the connection.
        """
        peer, skt = connectedPair(self)
        client = Client(1, skt, ADDRESS)
        peer.close()
        self.assertRaises(ConnectionDone, client.receive)

    def test_receiveReset(self):
        """
        L{Client.receive} raises L{ConnectionLost} if the connection was
        reset.
        """
        peer, skt = connectedPair(self)
        client = Client(1, skt, ADDRESS)
        abort(peer)
        self.assertRaises(ConnectionLost, client.receive)

    def test_send(self):
        """
        L{Client.send} writes everything to the peer.
        """
        peer, skt = connectedPair(self)
        Client(1, skt, ADDRESS).send(b"hello\n")
        self.assertEqual(peer.recv(1024), b"hello\n")

    def test_sendInterrupted(self):
        """
        An interrupted send is retried.
        """
        skt = FakeSocket([InterruptedError(4, "Interrupted system call")])
        Client(1, skt, ADDRESS).send(b"hello\n")
        self.assertEqual(skt.sent, [b"hello\n"])

    def test_sendBrokenPipe(self):
        """
        L{Client.send} raises L{ConnectionLost} on a broken pipe.
        """
        skt = FakeSocket([BrokenPipeError(32, "Broken pipe")])
        self.assertRaises(ConnectionLost, Client(1, skt, ADDRESS).send, b"x\n")

    def test_sendOtherError(self):
        """
        Other send errors are raised unchanged.
        """
        skt = FakeSocket([PermissionError(13, "Permission denied")])
        self.assertRaises(
            PermissionError, Client(1, skt, ADDRESS).send, b"x\n"
        )


class ClientRegistryTests(SynchronousTestCase):
    """
    Tests for L{ClientRegistry}.
    """

    def setUp(self):
        self.watchSet = MemoryWatchSet()
        self.registry = ClientRegistry(self.watchSet)

    def assertCoherent(self):
        """
        The watch set is watching exactly the registered clients.
        """
        self.assertEqual(self.watchSet.getReaders(), list(self.registry))

    def test_insert(self):
        """
        L{ClientRegistry.insert} creates a client with a new handle and starts
        watching it.
        """
        first = self.registry.insert(FakeSocket(), ADDRESS)
        second = self.registry.insert(FakeSocket(), ADDRESS)
        self.assertNotEqual(first.handle, second.handle)
        self.assertEqual(list(self.registry), [first, second])
        self.assertEqual(len(self.registry), 2)
        self.assertIn(first, self.registry)
        self.assertIs(self.registry.get(second.handle), second)
        self.assertCoherent()

    def test_handlesNotReused(self):
        """
        Handles of removed clients are never given out again.
        """
        first = self.registry.insert(FakeSocket(), ADDRESS)
        self.registry.remove(first)
        second = self.registry.insert(FakeSocket(), ADDRESS)
        self.assertNotEqual(first.handle, second.handle)
        self.assertNotIn(first, self.registry)

    def test_remove(self):
        """
        L{ClientRegistry.remove} forgets the client, stops watching it and
        closes its socket.
        """
        skt = FakeSocket()
        client = self.registry.insert(skt, ADDRESS)
        self.assertIs(self.registry.remove(client), client)
        self.assertTrue(skt.closed)
        self.assertEqual(len(self.registry), 0)
        self.assertCoherent()

    def test_removeByHandle(self):
        """
        A client can be removed by its handle.
        """
        client = self.registry.insert(FakeSocket(), ADDRESS)
        self.assertIs(self.registry.remove(client.handle), client)
        self.assertIsNone(self.registry.get(client.handle))

    def test_removeAbsent(self):
        """
        Removing a client which is not registered does nothing.
        """
        client = self.registry.insert(FakeSocket(), ADDRESS)
        self.registry.remove(client)
        self.assertIsNone(self.registry.remove(client))
        self.assertIsNone(self.registry.remove(12345))

    def test_notContainsOther(self):
        """
        Things which are not registered clients are not in the registry.
        """
        self.registry.insert(FakeSocket(), ADDRESS)
        self.assertNotIn(Client(1, FakeSocket(), ADDRESS), self.registry)
        self.assertNotIn(object(), self.registry)

    def test_removeCurrentWhileIterating(self):
        """
        Removing the client the iteration is at does not disturb the rest of
        the iteration.
        """
        clients = [self.registry.insert(FakeSocket(), ADDRESS) for i in range(4)]
        visited = []
        for client in self.registry:
            visited.append(client)
            self.registry.remove(client)
        self.assertEqual(visited, clients)
        self.assertCoherent()

    def test_removeOtherWhileIterating(self):
        """
        A client removed before the iteration reaches it is skipped; all the
        others are still visited once.
        """
        a, b, c, d = [self.registry.insert(FakeSocket(), ADDRESS) for i in range(4)]
        visited = []
        for client in self.registry:
            visited.append(client)
            if client is a:
                self.registry.remove(c)
        self.assertEqual(visited, [a, b, d])
        self.assertCoherent()

    def test_insertWhileIterating(self):
        """
        A client inserted during an iteration is not visited by it.
        """
        a = self.registry.insert(FakeSocket(), ADDRESS)
        visited = []
        for client in self.registry:
            visited.append(client)
            self.registry.insert(FakeSocket(), ADDRESS)
        self.assertEqual(visited, [a])
        self.assertEqual(len(self.registry), 2)

    def test_disconnect(self):
        """
        L{ClientRegistry.disconnect} removes the client and announces it, once.
        """
        client = self.registry.insert(FakeSocket(), ADDRESS)
        with capturedLogs() as events:
            self.registry.disconnect(client)
            self.registry.disconnect(client)
        self.assertEqual(noticesIn(events), ["192.0.2.7:4321 disconnected"])
        self.assertEqual(len(self.registry), 0)

    def test_closeAll(self):
        """
        L{ClientRegistry.closeAll} removes and closes every client without
        any notice.
        """
        sockets = [FakeSocket() for i in range(3)]
        clients = [self.registry.insert(skt, ADDRESS) for skt in sockets]
        with capturedLogs() as events:
            self.assertEqual(self.registry.closeAll(), clients)
        self.assertEqual(noticesIn(events), [])
        self.assertTrue(all(skt.closed for skt in sockets))
        self.assertCoherent()

    def test_coherence(self):
        """
        Through any sequence of insertions and removals the watch set holds
        exactly the registered clients.
        """
        clients = []
        for step in range(20):
            if step % 3 == 2:
                self.registry.remove(clients.pop(len(clients) // 2))
            else:
                clients.append(self.registry.insert(FakeSocket(), ADDRESS))
            self.assertCoherent()
            self.assertEqual(list(self.registry), clients)
